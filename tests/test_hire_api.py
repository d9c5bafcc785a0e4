"""
API tests for discovery, hires and open requests.

Test Coverage:
- Ranked professional directory (filters, premium expiry, pagination)
- Hire creation, listing and status updates
- HTTP mapping of lifecycle errors (400 / 403 / 404 / 409)
- Open request listing, claiming and publication of pending requests
"""

from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from core.exceptions import ConcurrencyConflict
from core.models import Hire
from core.tests.factories import DESCRIPTION, make_hire, make_professional, make_user


def bearer(user):
    return f'Bearer {RefreshToken.for_user(user).access_token}'


class ProfessionalDirectoryAPITests(TestCase):
    """Test suite for GET /api/professionals/."""

    url = '/api/professionals/'

    def setUp(self):
        self.client = APIClient()
        now = timezone.now()
        self.top_rated = make_professional(display_name='Alto', rating='4.90', city='Montevideo', barrio='Pocitos')
        self.premium = make_professional(
            display_name='Premium',
            rating='4.20',
            city='Montevideo',
            barrio='Centro',
            is_premium=True,
            subscription_end_date=now + timedelta(days=30),
        )
        self.expired = make_professional(
            display_name='Vencido',
            rating='3.00',
            city='Canelones',
            is_premium=True,
            subscription_end_date=now - timedelta(days=1),
        )

    def _names(self, response):
        return [item['display_name'] for item in response.data['results']]

    def test_public_ranked_listing(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._names(response), ['Premium', 'Alto', 'Vencido'])
        self.assertEqual(response.data['count'], 3)

    def test_is_premium_is_effective_status(self):
        response = self.client.get(self.url)

        flags = {item['display_name']: item['is_premium'] for item in response.data['results']}
        self.assertEqual(flags, {'Premium': True, 'Alto': False, 'Vencido': False})

    def test_city_and_barrio_filter(self):
        response = self.client.get(self.url, {'city': 'montevideo', 'barrio': 'Pocitos'})

        self.assertEqual(self._names(response), ['Alto'])

    def test_barrio_without_city(self):
        response = self.client.get(self.url, {'barrio': 'Pocitos'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_min_rating(self):
        response = self.client.get(self.url, {'min_rating': '4.5'})
        self.assertEqual(self._names(response), ['Alto'])

        response = self.client.get(self.url, {'min_rating': 'high'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search(self):
        response = self.client.get(self.url, {'search': 'CANELONES'})

        self.assertEqual(self._names(response), ['Vencido'])

    def test_pagination(self):
        response = self.client.get(self.url, {'page_size': 2})

        self.assertEqual(len(response.data['results']), 2)
        self.assertIsNotNone(response.data['next'])
        self.assertIsNone(response.data['previous'])

        response = self.client.get(self.url, {'page_size': 2, 'page': 2})
        self.assertEqual(self._names(response), ['Vencido'])

    def test_page_out_of_range(self):
        response = self.client.get(self.url, {'page': 5})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class HireCreateAPITests(TestCase):
    """Test suite for POST /api/hires/."""

    url = '/api/hires/'

    def setUp(self):
        self.client = APIClient()
        self.client_user = make_user()
        self.professional = make_professional()
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.client_user))

    def _payload(self, **overrides):
        data = {
            'professional_id': self.professional.pk,
            'service_category': 'Plomero',
            'service_description': DESCRIPTION,
            'department': 'Montevideo',
            'city': 'Montevideo',
            'barrio': 'Pocitos',
        }
        data.update(overrides)
        return data

    def test_create_targeted_hire(self):
        response = self.client.post(self.url, self._payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['service_location'], 'Montevideo, Montevideo, Pocitos')
        self.assertIsNone(response.data['professional_contact'])
        self.assertNotIn('review_token', response.data)
        hire = Hire.objects.get(pk=response.data['id'])
        self.assertEqual(hire.client, self.client_user)

    def test_create_open_request(self):
        response = self.client.post(self.url, self._payload(professional_id=None), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['professional'])
        self.assertTrue(Hire.objects.get(pk=response.data['id']).is_open_request)

    def test_requires_authentication(self):
        self.client.credentials()

        response = self.client.post(self.url, self._payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_cannot_hire_yourself(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.professional.user))

        response = self.client.post(self.url, self._payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('professional_id', response.data)

    def test_unknown_professional(self):
        response = self.client.post(self.url, self._payload(professional_id=999999), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_zero_professional_id_is_not_an_open_request(self):
        response = self.client.post(self.url, self._payload(professional_id=0), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('professional_id', response.data)
        self.assertFalse(Hire.objects.filter(professional__isnull=True).exists())

    def test_invalid_description_and_location(self):
        response = self.client.post(
            self.url,
            self._payload(service_description='Corto', city='Montevideo, Centro'),
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('service_description', response.data)
        self.assertIn('city', response.data)
        self.assertFalse(Hire.objects.exists())


class HireListAPITests(TestCase):
    """Test suite for GET /api/hires/."""

    url = '/api/hires/'

    def setUp(self):
        self.client = APIClient()
        self.client_user = make_user()
        self.other_client = make_user()
        self.professional = make_professional()
        self.own_pending = make_hire(client=self.client_user, professional=self.professional)
        self.own_accepted = make_hire(client=self.client_user, professional=self.professional, status='accepted')
        self.foreign = make_hire(client=self.other_client, professional=self.professional)

    def test_client_sees_own_hires(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.client_user))

        response = self.client.get(self.url)

        self.assertEqual(
            {item['id'] for item in response.data},
            {self.own_pending.pk, self.own_accepted.pk}
        )

    def test_professional_sees_assigned_hires(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.professional.user))

        response = self.client.get(self.url)

        self.assertEqual(len(response.data), 3)

    def test_status_filter(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.client_user))

        response = self.client.get(self.url, {'status': 'accepted'})

        self.assertEqual([item['id'] for item in response.data], [self.own_accepted.pk])

    def test_invalid_status_filter(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.client_user))

        response = self.client.get(self.url, {'status': 'archived'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_contact_shared_only_after_acceptance(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.client_user))

        response = self.client.get(self.url)

        contacts = {item['id']: item['professional_contact'] for item in response.data}
        self.assertIsNone(contacts[self.own_pending.pk])
        self.assertEqual(contacts[self.own_accepted.pk]['email'], self.professional.user.email)


class HireStatusUpdateAPITests(TestCase):
    """Test suite for PUT /api/hires/<id>/status/."""

    def setUp(self):
        self.client = APIClient()
        self.client_user = make_user()
        self.professional = make_professional()
        self.stranger = make_user()
        self.hire = make_hire(client=self.client_user, professional=self.professional)

    def _put(self, user, new_status, hire=None):
        hire = hire or self.hire
        self.client.credentials(HTTP_AUTHORIZATION=bearer(user))
        return self.client.put(f'/api/hires/{hire.pk}/status/', {'status': new_status}, format='json')

    def test_professional_accepts(self):
        response = self._put(self.professional.user, 'accepted')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'accepted')
        self.assertIsNotNone(response.data['accepted_at'])
        self.assertIsNotNone(response.data['professional_contact'])

    def test_full_lifecycle(self):
        for user, new_status in (
            (self.professional.user, 'accepted'),
            (self.professional.user, 'in_progress'),
            (self.professional.user, 'waiting_client_approval'),
            (self.client_user, 'completed'),
        ):
            response = self._put(user, new_status)
            self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

        self.hire.refresh_from_db()
        self.assertEqual(self.hire.status, 'completed')

    def test_client_cannot_accept(self):
        response = self._put(self.client_user, 'accepted')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_stranger_forbidden(self):
        response = self._put(self.stranger, 'cancelled')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.hire.refresh_from_db()
        self.assertEqual(self.hire.status, 'pending')

    def test_terminal_hire(self):
        hire = make_hire(client=self.client_user, professional=self.professional, status='completed')

        response = self._put(self.client_user, 'cancelled', hire=hire)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Cannot modify a completed hire', response.data['detail'])

    def test_illegal_transition(self):
        response = self._put(self.professional.user, 'waiting_client_approval')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_status_value(self):
        response = self._put(self.professional.user, 'archived')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_concurrent_update_conflict(self):
        with patch('core.views.transition_hire', side_effect=ConcurrencyConflict()):
            response = self._put(self.professional.user, 'accepted')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_unknown_hire(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.client_user))

        response = self.client.put('/api/hires/999999/status/', {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_requires_authentication(self):
        response = self.client.put(f'/api/hires/{self.hire.pk}/status/', {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class OpenRequestAPITests(TestCase):
    """Test suite for open requests."""

    def setUp(self):
        self.client = APIClient()
        self.client_user = make_user()
        self.other_client = make_user()
        self.professional = make_professional()
        self.rival = make_professional()
        self.own = make_hire(client=self.client_user, service_category='Plomero')
        self.foreign = make_hire(client=self.other_client, service_category='Pintor')

    def test_professional_sees_all_open_requests(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.professional.user))

        response = self.client.get('/api/hires/open/')

        self.assertEqual({item['id'] for item in response.data}, {self.own.pk, self.foreign.pk})

    def test_category_filter(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.professional.user))

        response = self.client.get('/api/hires/open/', {'category': 'Pintor'})

        self.assertEqual([item['id'] for item in response.data], [self.foreign.pk])

    def test_client_sees_only_own(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.client_user))

        response = self.client.get('/api/hires/open/')

        self.assertEqual([item['id'] for item in response.data], [self.own.pk])

    def test_claim(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.professional.user))

        response = self.client.post(f'/api/hires/{self.own.pk}/claim/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['professional']['id'], self.professional.pk)
        self.assertEqual(response.data['status'], 'pending')

    def test_second_claim_conflicts(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.professional.user))
        self.client.post(f'/api/hires/{self.own.pk}/claim/')

        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.rival.user))
        response = self.client.post(f'/api/hires/{self.own.pk}/claim/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_client_cannot_claim(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.other_client))

        response = self.client.post(f'/api/hires/{self.own.pk}/claim/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_professional_cannot_claim_own_request(self):
        own_request = make_hire(client=self.professional.user)
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.professional.user))

        response = self.client.post(f'/api/hires/{own_request.pk}/claim/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        own_request.refresh_from_db()
        self.assertIsNone(own_request.professional)

    def test_claim_unknown_hire(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.professional.user))

        response = self.client.post('/api/hires/999999/claim/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_publish_pending_request(self):
        self.client.credentials(HTTP_AUTHORIZATION=bearer(self.client_user))

        response = self.client.post(
            '/api/hires/publish-pending/',
            {
                'service_category': 'Jardinero',
                'service_description': DESCRIPTION,
                'service_location': 'Pando, Canelones',
            },
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        hire = Hire.objects.get(pk=response.data['id'])
        self.assertTrue(hire.is_open_request)
        self.assertEqual(hire.client, self.client_user)
