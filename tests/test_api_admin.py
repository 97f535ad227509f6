"""
Tests for the admin API endpoints.

- Admin header required (401 missing, 403 not an admin)
- CSV points upload, template and history
- Pending points listing
- Checkpoint management
"""
import io
import json

from culturepoints.models import Checkpoint, PendingPointsEntry

from conftest import make_checkpoint


def upload(client, headers, body: bytes, filename='points.csv'):
    return client.post(
        '/api/admin/points-upload',
        data={'file': (io.BytesIO(body), filename)},
        content_type='multipart/form-data',
        headers=headers,
    )


class TestAdminAuth:

    def test_missing_header_is_401(self, client):
        response = client.get('/api/admin/pending-points')

        assert response.status_code == 401
        assert response.get_json()['code'] == 'AUTH_REQUIRED'

    def test_non_admin_is_403(self, client):
        response = client.get('/api/admin/pending-points', headers={'X-User-Email': 'visitor@x.com'})

        assert response.status_code == 403
        assert response.get_json()['error'] == 'Unauthorized - Admin access required'

    def test_admin_email_case_insensitive(self, client):
        response = client.get(
            '/api/admin/pending-points', headers={'X-User-Email': 'Admin@CulturePoints.test'}
        )
        assert response.status_code == 200


class TestPointsUpload:
    """POST /api/admin/points-upload"""

    def test_mixed_batch(self, client, admin_headers, sample_player):
        body = (
            b'email,reason,points\n'
            b'player@example.com,Volunteer shift,100\n'
            b'stranger@example.com,Opening night,50\n'
            b'player@example.com,Bad row,-1\n'
        )

        response = upload(client, admin_headers, body)

        assert response.status_code == 200
        data = response.get_json()
        assert data['summary'] == {
            'total': 3,
            'successful': 1,
            'failed': 1,
            'user_not_found': 1,
            'total_points_awarded': 100,
        }
        assert sample_player.total_points == 100
        assert PendingPointsEntry.query.one().uploaded_by_email == 'admin@culturepoints.test'

    def test_non_csv_filename(self, client, admin_headers):
        response = upload(client, admin_headers, b'email,reason,points\n', filename='points.xlsx')

        assert response.status_code == 400
        assert response.get_json()['error'] == 'File must be a CSV'

    def test_no_file(self, client, admin_headers):
        response = client.post('/api/admin/points-upload', headers=admin_headers)
        assert response.status_code == 400

    def test_empty_csv(self, client, admin_headers):
        response = upload(client, admin_headers, b'')

        assert response.status_code == 400
        assert response.get_json()['error'] == 'CSV file is empty or invalid'

    def test_missing_columns(self, client, admin_headers):
        response = upload(client, admin_headers, b'email,points\na@x.com,10\n')

        assert response.status_code == 400
        assert 'CSV must have columns' in response.get_json()['error']

    def test_requires_admin(self, client):
        response = upload(client, {}, b'email,reason,points\na@x.com,Tour,10\n')

        assert response.status_code == 401
        assert PendingPointsEntry.query.count() == 0


class TestUploadHistoryAndTemplate:

    def test_template_download(self, client, admin_headers):
        response = client.get('/api/admin/points-upload/template', headers=admin_headers)

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'attachment' in response.headers['Content-Disposition']
        assert response.get_data(as_text=True).startswith('email,reason,points')

    def test_history_lists_batches(self, client, admin_headers):
        upload(client, admin_headers, b'email,reason,points\nghost@x.com,Tour,10\n')

        response = client.get('/api/admin/points-upload', headers=admin_headers)

        data = response.get_json()
        assert data['success'] is True
        assert len(data['batches']) == 1
        assert data['batches'][0]['user_not_found'] == 1


class TestPendingPoints:
    """GET /api/admin/pending-points"""

    def test_lists_unawarded_by_default(self, client, admin_headers, sample_player):
        upload(
            client, admin_headers,
            b'email,reason,points\nghost@x.com,Tour,10\nghost@x.com,Talk,15\n',
        )

        response = client.get('/api/admin/pending-points', headers=admin_headers)

        data = response.get_json()
        assert len(data['pendingPoints']) == 2
        assert data['summary'][0]['email'] == 'ghost@x.com'
        assert data['summary'][0]['total_pending_points'] == 25
        assert data['stats']['pending_total_points'] == 25

    def test_show_awarded(self, client, admin_headers, db):
        upload(client, admin_headers, b'email,reason,points\nlate@x.com,Tour,10\n')
        client.post('/api/player', data=json.dumps({
            'walletAddress': '0x' + 'ee' * 20,
            'email': 'late@x.com',
        }), content_type='application/json')

        hidden = client.get('/api/admin/pending-points', headers=admin_headers).get_json()
        shown = client.get(
            '/api/admin/pending-points?showAwarded=true', headers=admin_headers
        ).get_json()

        assert hidden['pendingPoints'] == []
        assert len(shown['pendingPoints']) == 1
        assert shown['pendingPoints'][0]['awarded'] is True
        assert shown['stats']['awarded_entries'] == 1


class TestCheckpointAdmin:

    def test_create_and_list(self, client, admin_headers, db):
        make_checkpoint(db, 'Old Wing', is_active=False)

        response = client.post(
            '/api/admin/checkpoints',
            data=json.dumps({'name': 'Print Room', 'chain_type': 'Stellar', 'points_value': 75}),
            content_type='application/json',
            headers=admin_headers,
        )

        assert response.status_code == 201
        checkpoint = response.get_json()['checkpoint']
        assert checkpoint['chain_type'] == 'stellar'
        assert checkpoint['points_value'] == 75
        assert checkpoint['is_active'] is True

        listing = client.get('/api/admin/checkpoints', headers=admin_headers).get_json()
        assert {c['name'] for c in listing['checkpoints']} == {'Old Wing', 'Print Room'}

    def test_duplicate_name_conflicts(self, client, admin_headers, sample_checkpoint):
        response = client.post(
            '/api/admin/checkpoints',
            data=json.dumps({'name': 'Main Gallery'}),
            content_type='application/json',
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert Checkpoint.query.count() == 1

    def test_invalid_chain_type(self, client, admin_headers):
        response = client.post(
            '/api/admin/checkpoints',
            data=json.dumps({'name': 'Nowhere', 'chain_type': 'dogecoin'}),
            content_type='application/json',
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_deactivate(self, client, admin_headers, sample_checkpoint):
        response = client.patch(
            f'/api/admin/checkpoints/{sample_checkpoint.id}',
            data=json.dumps({'is_active': False, 'points_value': 120}),
            content_type='application/json',
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert sample_checkpoint.is_active is False
        assert sample_checkpoint.points_value == 120

    def test_get_unknown(self, client, admin_headers):
        response = client.get('/api/admin/checkpoints/404', headers=admin_headers)
        assert response.status_code == 404


class TestPendingPointsForEmail:

    def test_filter_by_email(self, client, admin_headers):
        upload(
            client, admin_headers,
            b'email,reason,points\nghost@x.com,Tour,10\nother@x.com,Talk,15\n',
        )

        response = client.get(
            '/api/admin/pending-points', query_string={'email': 'Ghost@X.com'}, headers=admin_headers
        )

        data = response.get_json()
        assert data['email'] == 'ghost@x.com'
        assert data['total_points'] == 10
        assert len(data['entries']) == 1

    def test_malformed_email(self, client, admin_headers):
        response = client.get(
            '/api/admin/pending-points', query_string={'email': 'nope'}, headers=admin_headers
        )
        assert response.status_code == 400
