"""
Integration tests for the /api/quotes endpoints.
"""

import re
from decimal import Decimal

import pytest

from floowly.services.quote_calculator import compute_item_totals


def create_wrap(client, payload):
    response = client.post('/api/quotes', json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestAuthentication:
    """Login and company selection are required."""

    def test_anonymous_request_is_rejected(self, client):
        response = client.get('/api/quotes')

        assert response.status_code == 401
        assert response.get_json() == {'status': 'error', 'message': 'Authentication required'}

    def test_user_without_company_is_rejected(self, client, user1):
        with client.session_transaction() as sess:
            sess['user_id'] = user1.id

        response = client.get('/api/quotes')

        assert response.status_code == 403
        assert response.get_json()['status'] == 'error'

    def test_company_of_another_user_is_rejected(self, client, user1, tenant2):
        with client.session_transaction() as sess:
            sess['user_id'] = user1.id
            sess['tenant_id'] = tenant2.id

        assert client.get('/api/quotes').status_code == 403


class TestQuotesApi:
    """CRUD over HTTP."""

    def test_create_returns_computed_totals(self, authenticated_client, wrap_payload):
        data = create_wrap(authenticated_client, wrap_payload)

        assert re.match(r'^Q\d{8}-\d{3}$', data['quote_number'])
        assert data['status'] == 'draft'
        assert data['subtotal'] == 25000.0
        assert data['tax_amount'] == 6250.0
        assert data['total'] == 31250.0
        assert data['profit_estimate'] == 20000.0
        assert data['hours'] == 16.0
        assert data['sent_at'] is None
        assert data['customer']['name'] == 'John Doe'
        assert [item['total'] for item in data['items']] == [25000.0, 6250.0]

    def test_create_validation_error_names_field(self, authenticated_client, wrap_payload):
        wrap_payload['items'][0]['tax_rate'] = 120

        response = authenticated_client.post('/api/quotes', json=wrap_payload)

        assert response.status_code == 400
        body = response.get_json()
        assert body['status'] == 'error'
        assert body['field'] == 'items[0].tax_rate'

    def test_create_without_items(self, authenticated_client, wrap_payload):
        wrap_payload['items'] = []

        data = create_wrap(authenticated_client, wrap_payload)

        assert data['items'] == []
        assert data['subtotal'] == 0.0
        assert data['tax_amount'] == 0.0
        assert data['total'] == 0.0
        assert data['profit_estimate'] == 7500.0

    def test_create_with_items_key_missing(self, authenticated_client, wrap_payload):
        del wrap_payload['items']

        data = create_wrap(authenticated_client, wrap_payload)

        assert data['items'] == []
        assert data['total'] == 0.0

    def test_stored_inputs_reproduce_stored_totals(self, authenticated_client, wrap_payload):
        wrap_payload['items'] = [{'name': 'Decal', 'quantity': 3, 'unit_price': 33.335, 'tax_rate': 25}]
        created = create_wrap(authenticated_client, wrap_payload)

        fetched = authenticated_client.get(f"/api/quotes/{created['id']}").get_json()

        line = fetched['items'][0]
        assert line['quantity'] == 3.0
        assert line['unit_price'] == 33.335
        assert line['tax_rate'] == 25.0
        assert (line['subtotal'], line['tax_amount'], line['total']) == (100.01, 25.0, 125.01)
        assert (fetched['subtotal'], fetched['tax_amount'], fetched['total']) == (100.01, 25.0, 125.01)

        recomputed = compute_item_totals(line['quantity'], line['unit_price'], line['tax_rate'])
        assert recomputed.subtotal == Decimal('100.01')
        assert recomputed.total == Decimal('125.01')

    def test_small_quantity_is_kept(self, authenticated_client, wrap_payload):
        wrap_payload['items'] = [{'name': 'Ink', 'quantity': '0.0004', 'unit_price': 100000, 'tax_rate': 0}]

        data = create_wrap(authenticated_client, wrap_payload)

        assert data['items'][0]['quantity'] == 0.0004
        assert data['items'][0]['total'] == 40.0

    def test_too_many_decimals_are_rejected(self, authenticated_client, wrap_payload):
        wrap_payload['items'][0]['quantity'] = '0.0000004'

        response = authenticated_client.post('/api/quotes', json=wrap_payload)

        assert response.status_code == 400
        assert response.get_json()['field'] == 'items[0].quantity'

    def test_fractional_customer_id_is_rejected(self, authenticated_client, wrap_payload):
        wrap_payload['customer_id'] = wrap_payload['customer_id'] + 0.5

        response = authenticated_client.post('/api/quotes', json=wrap_payload)

        assert response.status_code == 400
        assert response.get_json()['field'] == 'customer_id'

    def test_body_must_be_json_object(self, authenticated_client):
        response = authenticated_client.post('/api/quotes', data='not json', content_type='text/plain')

        assert response.status_code == 400

    def test_get_update_and_list(self, authenticated_client, wrap_payload):
        created = create_wrap(authenticated_client, wrap_payload)

        response = authenticated_client.put(f"/api/quotes/{created['id']}", json={
            'items': [{'name': 'Hood wrap', 'quantity': 2, 'unit_price': '1500.50', 'tax_rate': 25}]
        })
        assert response.status_code == 200
        assert response.get_json()['subtotal'] == 3001.0
        assert response.get_json()['total'] == 3751.25

        fetched = authenticated_client.get(f"/api/quotes/{created['id']}").get_json()
        assert fetched['total'] == 3751.25
        assert len(fetched['items']) == 1

        listed = authenticated_client.get('/api/quotes?search=bmw').get_json()
        assert [quote['id'] for quote in listed] == [created['id']]

    def test_list_filters_by_customer(self, authenticated_client, wrap_payload):
        created = create_wrap(authenticated_client, wrap_payload)

        listed = authenticated_client.get(f"/api/quotes?customer_id={wrap_payload['customer_id']}").get_json()
        assert [quote['id'] for quote in listed] == [created['id']]

        assert authenticated_client.get('/api/quotes?customer_id=999999').get_json() == []

    def test_delete(self, authenticated_client, wrap_payload):
        created = create_wrap(authenticated_client, wrap_payload)

        response = authenticated_client.delete(f"/api/quotes/{created['id']}")

        assert response.status_code == 200
        assert authenticated_client.get(f"/api/quotes/{created['id']}").status_code == 404

    def test_missing_quote(self, authenticated_client):
        response = authenticated_client.get('/api/quotes/999999')

        assert response.status_code == 404
        assert response.get_json()['status'] == 'error'


class TestQuoteStatusApi:
    """Status transitions over HTTP."""

    def test_send_then_accept(self, authenticated_client, wrap_payload):
        created = create_wrap(authenticated_client, wrap_payload)
        url = f"/api/quotes/{created['id']}/status"

        sent = authenticated_client.put(url, json={'status': 'sent'}).get_json()
        assert sent['status'] == 'sent'
        assert sent['sent_at'] is not None

        accepted = authenticated_client.put(url, json={'status': 'accepted'}).get_json()
        assert accepted['status'] == 'accepted'
        assert accepted['sent_at'] == sent['sent_at']

    def test_unknown_status(self, authenticated_client, wrap_payload):
        created = create_wrap(authenticated_client, wrap_payload)

        response = authenticated_client.put(f"/api/quotes/{created['id']}/status", json={'status': 'bogus'})

        assert response.status_code == 400
        assert response.get_json()['field'] == 'status'
        assert authenticated_client.get(f"/api/quotes/{created['id']}").get_json()['status'] == 'draft'

    @pytest.mark.parametrize('body', [{}, {'status': ''}, {'status': None}])
    def test_status_is_required(self, authenticated_client, wrap_payload, body):
        created = create_wrap(authenticated_client, wrap_payload)

        response = authenticated_client.put(f"/api/quotes/{created['id']}/status", json=body)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Status is required'
        assert response.get_json()['field'] == 'status'

    def test_stats(self, authenticated_client, wrap_payload):
        created = create_wrap(authenticated_client, wrap_payload)
        authenticated_client.put(f"/api/quotes/{created['id']}/status", json={'status': 'accepted'})

        stats = authenticated_client.get('/api/quotes/stats').get_json()

        assert stats['total'] == 1
        assert stats['accepted'] == 1
        assert stats['accepted_value'] == 31250.0
        assert stats['conversion_rate'] == 100.0


class TestTenantIsolationApi:
    """Quotes of one company are invisible to another."""

    def test_other_tenant_sees_nothing(self, authenticated_client, tenant2_client, wrap_payload):
        created = create_wrap(authenticated_client, wrap_payload)
        url = f"/api/quotes/{created['id']}"

        assert tenant2_client.get('/api/quotes').get_json() == []
        assert tenant2_client.get(url).status_code == 404
        assert tenant2_client.put(url, json={'title': 'Hijacked'}).status_code == 404
        assert tenant2_client.put(f'{url}/status', json={'status': 'accepted'}).status_code == 404
        assert tenant2_client.delete(url).status_code == 404

        assert authenticated_client.get(url).get_json()['title'] == 'BMW X5 Full Wrap'

    def test_cannot_quote_other_tenants_customer(self, tenant2_client, wrap_payload):
        response = tenant2_client.post('/api/quotes', json=wrap_payload)

        assert response.status_code == 404


class TestErrorsAndMetrics:
    """JSON error pages and the metrics endpoint."""

    def test_unknown_route_is_json(self, client):
        response = client.get('/api/does-not-exist')

        assert response.status_code == 404
        assert response.get_json() == {'status': 'error', 'message': 'Not Found'}

    def test_wrong_method_is_json(self, authenticated_client):
        response = authenticated_client.post('/api/quotes/1/status', json={'status': 'sent'})

        assert response.status_code == 405
        assert response.get_json()['message'] == 'Method Not Allowed'

    def test_metrics_endpoint(self, authenticated_client, wrap_payload):
        created = create_wrap(authenticated_client, wrap_payload)
        authenticated_client.put(f"/api/quotes/{created['id']}/status", json={'status': 'sent'})

        response = authenticated_client.get('/metrics')

        assert response.status_code == 200
        body = response.get_data(as_text=True)
        assert 'http_requests_total' in body
        assert 'quote_status_transitions_total{status="sent"}' in body
