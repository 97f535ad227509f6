"""
CulturePoints entry point.
"""
import os
import sys
import traceback

print("[CulturePoints] ========================================")
print("[CulturePoints] Starting CulturePoints rewards engine")
print("[CulturePoints] ========================================")

# Default to production for container deployment
config_name = os.getenv('FLASK_ENV', 'production')
print(f"[CulturePoints] Config: {config_name}")
print(f"[CulturePoints] PORT: {os.getenv('PORT', 'not set')}")
print(f"[CulturePoints] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")

try:
    from culturepoints import create_app
    app = create_app(config_name)
    print(f"[CulturePoints] Routes: {len(list(app.url_map.iter_rules()))}")
except Exception as e:
    print(f"[CulturePoints] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
