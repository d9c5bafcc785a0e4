"""
API tests for the guest contact flow and guest review links.
"""

from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from core.models import Hire, Review
from core.tests.factories import DESCRIPTION, make_hire, make_professional


class GuestContactAPITests(TestCase):
    """Test suite for /api/guest/professionals/ and /api/guest/hires/."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.professional = make_professional(profession='Plomero', display_name='Pedro Plomero')

    def _payload(self, **overrides):
        data = {
            'name': 'Ana Invitada',
            'email': 'Ana@Example.com',
            'phone': '099 123 456',
            'category': 'Plomero',
            'description': DESCRIPTION,
            'department': 'Montevideo',
            'city': 'Montevideo',
            'barrio': 'Pocitos',
            'timing': 'Mañana',
            'professional_id': self.professional.pk,
        }
        data.update(overrides)
        return data

    def test_list_matches(self):
        make_professional(profession='Electricista')

        response = self.client.get('/api/guest/professionals/', {'category': 'Plomero'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['id'] for item in response.data], [self.professional.pk])

    def test_list_requires_category(self):
        response = self.client.get('/api/guest/professionals/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_guest_hire(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post('/api/guest/hires/', self._payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_guest'])
        self.assertNotIn('review_token', response.data)

        hire = Hire.objects.get(pk=response.data['id'])
        self.assertEqual(hire.guest_email, 'ana@example.com')
        self.assertTrue(hire.review_token)
        self.assertEqual(len(mail.outbox), 2)

    def test_no_match_requires_registration(self):
        response = self.client.post(
            '/api/guest/hires/',
            self._payload(category='Jardinero', professional_id=None),
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertTrue(response.data['registration_required'])
        self.assertEqual(
            response.data['pending_request'],
            {
                'service_category': 'Jardinero',
                'service_description': DESCRIPTION,
                'service_location': 'Montevideo, Montevideo, Pocitos',
            }
        )
        self.assertFalse(Hire.objects.exists())

    def test_professional_not_in_list(self):
        electrician = make_professional(profession='Electricista')

        response = self.client.post('/api/guest/hires/', self._payload(professional_id=electrician.pk), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('professional_id', response.data)

    def test_invalid_contact_data(self):
        response = self.client.post(
            '/api/guest/hires/',
            self._payload(email='not-an-email', phone='abc', description='corto'),
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('email', 'phone', 'description'):
            self.assertIn(field, response.data)


class GuestReviewAPITests(TestCase):
    """Test suite for /api/guest/reviews/<token>/."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.professional = make_professional(display_name='Pedro Plomero')
        self.hire = make_hire(professional=self.professional, guest=True, status='waiting_client_approval')
        self.url = f'/api/guest/reviews/{self.hire.review_token}/'

    def test_summary(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['professional_name'], 'Pedro Plomero')
        self.assertTrue(response.data['can_confirm'])
        self.assertFalse(response.data['can_review'])

    def test_unknown_token(self):
        response = self.client.get('/api/guest/reviews/unknown-token/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_confirm_then_review(self):
        response = self.client.post(f'{self.url}complete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertTrue(response.data['can_review'])

        response = self.client.post(self.url, {'rating': 5, 'comment': 'Impecable'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_guest_review'])
        self.assertEqual(response.data['reviewer_name'], 'Ana Invitada')

        response = self.client.get(self.url)
        self.assertFalse(response.data['can_review'])

    def test_second_review_rejected(self):
        self.client.post(f'{self.url}complete/')
        self.client.post(self.url, {'rating': 5}, format='json')

        response = self.client.post(self.url, {'rating': 1}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Review.objects.count(), 1)

    def test_review_before_completion(self):
        response = self.client.post(self.url, {'rating': 5}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_confirm_twice(self):
        self.client.post(f'{self.url}complete/')

        response = self.client.post(f'{self.url}complete/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_confirm_unknown_token(self):
        response = self.client.post('/api/guest/reviews/unknown-token/complete/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_rating(self):
        self.client.post(f'{self.url}complete/')

        response = self.client.post(self.url, {'rating': 6}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('rating', response.data)
