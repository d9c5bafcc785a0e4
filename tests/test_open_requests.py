"""
Tests for open requests (hires published without a professional).
"""

from django.test import TestCase

from core.exceptions import ConcurrencyConflict, Unauthorized
from core.lifecycle import claim_open_request, hires_for, open_requests, transition_hire
from core.models import Hire
from core.tests.factories import make_hire, make_professional, make_user


class ClaimOpenRequestTests(TestCase):

    def setUp(self):
        self.client_user = make_user()
        self.professional = make_professional()
        self.rival = make_professional()
        self.hire = make_hire(client=self.client_user)

    def test_claim_assigns_professional(self):
        hire = claim_open_request(self.hire.pk, self.professional.user)

        self.assertEqual(hire.professional, self.professional)
        self.assertEqual(hire.status, Hire.Status.PENDING)
        self.assertFalse(hire.is_open_request)

    def test_second_claim_conflicts(self):
        claim_open_request(self.hire.pk, self.professional.user)

        with self.assertRaises(ConcurrencyConflict):
            claim_open_request(self.hire.pk, self.rival.user)

        self.hire.refresh_from_db()
        self.assertEqual(self.hire.professional, self.professional)

    def test_cancelled_request_cannot_be_claimed(self):
        transition_hire(self.hire, 'cancelled', self.client_user)

        with self.assertRaises(ConcurrencyConflict):
            claim_open_request(self.hire.pk, self.professional.user)

    def test_targeted_hire_cannot_be_claimed(self):
        targeted = make_hire(client=self.client_user, professional=self.professional)

        with self.assertRaises(ConcurrencyConflict):
            claim_open_request(targeted.pk, self.rival.user)

    def test_client_cannot_claim(self):
        with self.assertRaises(Unauthorized):
            claim_open_request(self.hire.pk, self.client_user)

    def test_professional_cannot_claim_own_request(self):
        own_request = make_hire(client=self.professional.user)

        with self.assertRaises(Unauthorized):
            claim_open_request(own_request.pk, self.professional.user)

        own_request.refresh_from_db()
        self.assertIsNone(own_request.professional)
        self.assertTrue(own_request.is_open_request)
        self.assertIn(own_request, open_requests())

    def test_unknown_hire(self):
        with self.assertRaises(Hire.DoesNotExist):
            claim_open_request(999999, self.professional.user)

    def test_claimed_request_follows_normal_lifecycle(self):
        hire = claim_open_request(self.hire.pk, self.professional.user)

        transition_hire(hire, 'accepted', self.professional.user)

        self.assertEqual(hire.status, 'accepted')

    def test_open_request_cannot_be_accepted_before_claim(self):
        with self.assertRaises(Unauthorized):
            transition_hire(self.hire, 'accepted', self.professional.user)


class OpenRequestQueryTests(TestCase):

    def test_lists_only_unassigned_pending(self):
        client_user = make_user()
        professional = make_professional()
        plumbing = make_hire(client=client_user, service_category='Plomero')
        painting = make_hire(client=client_user, service_category='Pintor')
        make_hire(client=client_user, professional=professional)
        make_hire(client=client_user, status='cancelled')

        self.assertEqual(set(open_requests()), {plumbing, painting})
        self.assertEqual(list(open_requests('Pintor')), [painting])

    def test_hires_for_client_and_professional(self):
        client_user = make_user()
        other_client = make_user()
        professional = make_professional()
        own = make_hire(client=client_user, professional=professional)
        foreign = make_hire(client=other_client, professional=professional)
        make_hire(client=other_client)

        self.assertEqual(list(hires_for(client_user)), [own])
        self.assertEqual(set(hires_for(professional.user)), {own, foreign})
