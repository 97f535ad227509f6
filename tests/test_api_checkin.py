"""
Tests for the check-in API endpoints.
"""
import json

from culturepoints.models import CheckinEvent, Player

from conftest import EVM_ADDRESS, SOLANA_ADDRESS, APTOS_ADDRESS, make_checkpoint


def post_checkin(client, body):
    return client.post('/api/checkin', data=json.dumps(body), content_type='application/json')


class TestCheckinEndpoint:
    """POST /api/checkin"""

    def test_legacy_body_is_evm(self, client, sample_checkpoint):
        response = post_checkin(client, {
            'walletAddress': EVM_ADDRESS,
            'checkpoint': 'Main Gallery',
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['data']['pointsAwarded'] == 100
        assert data['data']['dailyRewardClaimed'] is True
        assert data['data']['player']['wallet_address'] == EVM_ADDRESS
        assert data['data']['checkpointActivityId'] is not None
        assert data['message'] == 'Nice! You earned 100 points for this checkpoint.'

    def test_chain_body(self, client, sample_checkpoint):
        response = post_checkin(client, {
            'chain': 'aptos',
            'walletAddress': APTOS_ADDRESS.upper().replace('0X', '0x'),
            'checkpoint': sample_checkpoint.id,
            'email': 'aptos@example.com',
        })

        assert response.status_code == 200
        player = response.get_json()['data']['player']
        assert player['addresses'] == {'aptos': APTOS_ADDRESS}
        assert player['email'] == 'aptos@example.com'

    def test_invalid_chain_does_not_fall_back_to_legacy(self, client, sample_checkpoint):
        """An EVM-valid address with a bad chain tag is rejected."""
        response = post_checkin(client, {
            'chain': 'dogecoin',
            'walletAddress': EVM_ADDRESS,
            'checkpoint': sample_checkpoint.id,
        })

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_FORMAT'
        assert Player.query.count() == 0

    def test_chain_body_validates_against_its_chain(self, client, sample_checkpoint):
        response = post_checkin(client, {
            'chain': 'solana',
            'walletAddress': EVM_ADDRESS,
            'checkpoint': sample_checkpoint.id,
        })

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid Solana wallet address format'

    def test_missing_checkpoint(self, client):
        response = post_checkin(client, {'walletAddress': EVM_ADDRESS})

        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_missing_wallet(self, client, sample_checkpoint):
        response = post_checkin(client, {'checkpoint': sample_checkpoint.id})
        assert response.status_code == 400

    def test_non_json_body(self, client):
        response = client.post('/api/checkin', data='hello', content_type='text/plain')
        assert response.status_code == 400

    def test_unknown_checkpoint_404(self, client):
        response = post_checkin(client, {'walletAddress': EVM_ADDRESS, 'checkpoint': 'Nowhere'})

        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'

    def test_daily_limit_429_with_user_message(self, client, db):
        checkpoint = make_checkpoint(db, 'Busy Hall')
        body = {'chain': 'solana', 'walletAddress': SOLANA_ADDRESS, 'checkpoint': checkpoint.id}

        for _ in range(10):
            assert post_checkin(client, body).status_code == 200

        response = post_checkin(client, body)

        assert response.status_code == 429
        data = response.get_json()
        assert data == {
            'success': False,
            'error': 'Daily checkpoint limit of 10 reached. Come back tomorrow!',
            'code': 'LIMIT_EXCEEDED',
        }
        assert CheckinEvent.query.count() == 10

    def test_request_id_echoed(self, client, sample_checkpoint):
        response = client.post(
            '/api/checkin',
            data=json.dumps({'walletAddress': EVM_ADDRESS, 'checkpoint': sample_checkpoint.id}),
            content_type='application/json',
            headers={'X-Request-ID': 'abc123'},
        )
        assert response.headers['X-Request-ID'] == 'abc123'


class TestCheckinStatusEndpoint:
    """GET /api/checkin-status"""

    def test_status_after_checkin(self, client, sample_checkpoint):
        post_checkin(client, {'walletAddress': EVM_ADDRESS, 'checkpoint': sample_checkpoint.id})

        response = client.get(
            f'/api/checkin-status?address={EVM_ADDRESS}&checkpoint={sample_checkpoint.id}'
        )

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['hasCheckedIn'] is True
        assert data['checkpointCheckinToday'] is True
        assert data['dailyRewardClaimed'] is True
        assert data['pointsEarnedToday'] == 100

    def test_status_unknown_wallet(self, client, sample_checkpoint):
        response = client.get('/api/checkin-status', query_string={
            'chain': 'solana',
            'address': SOLANA_ADDRESS,
            'checkpoint': 'Main Gallery',
        })

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['hasCheckedIn'] is False
        assert data['pointsEarnedToday'] == 0

    def test_status_requires_address(self, client):
        response = client.get('/api/checkin-status?checkpoint=1')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Address parameter is required'

    def test_status_requires_checkpoint(self, client):
        response = client.get(f'/api/checkin-status?address={EVM_ADDRESS}')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Checkpoint parameter is required'
