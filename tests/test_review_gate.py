"""
Tests for the review gate.

Test Coverage:
- Only completed hires can be reviewed
- At most one review per hire
- Only the hire's client may review it
- Guest reviews through the review token, which the review consumes
- Guest completion confirmation through the token
- Rating and comment validation
- Review notification
"""

from django.core import mail
from django.core.exceptions import ValidationError
from django.test import TestCase

from core.exceptions import DuplicateError, NotEligibleError, Unauthorized
from core.models import Hire, Notification, Review
from core.reviews import (
    confirm_completion_with_token,
    hire_for_review_token,
    submit_guest_review,
    submit_review,
)
from core.tests.factories import make_hire, make_professional, make_user


class ClientReviewTests(TestCase):

    def setUp(self):
        self.client_user = make_user(full_name='Carla Cliente')
        self.professional = make_professional(rating='0.00')
        self.hire = make_hire(client=self.client_user, professional=self.professional, status='completed')

    def test_review_completed_hire(self):
        review = submit_review(self.hire.pk, 5, 'Excelente trabajo', actor=self.client_user)

        self.assertEqual(review.hire, self.hire)
        self.assertEqual(review.professional, self.professional)
        self.assertEqual(review.client, self.client_user)
        self.assertFalse(review.is_guest_review)

    def test_review_updates_professional_rating(self):
        submit_review(self.hire.pk, 4, actor=self.client_user)

        self.professional.refresh_from_db()
        self.assertEqual(str(self.professional.rating), '4.00')
        self.assertEqual(self.professional.rating_count, 1)

    def test_second_review_is_duplicate(self):
        submit_review(self.hire.pk, 5, actor=self.client_user)

        with self.assertRaises(DuplicateError):
            submit_review(self.hire.pk, 1, actor=self.client_user)

        self.assertEqual(Review.objects.filter(hire=self.hire).count(), 1)

    def test_not_completed_is_not_eligible(self):
        for status in ('pending', 'accepted', 'in_progress', 'waiting_client_approval', 'cancelled', 'rejected'):
            with self.subTest(status=status):
                hire = make_hire(client=self.client_user, professional=self.professional, status=status)

                with self.assertRaises(NotEligibleError):
                    submit_review(hire.pk, 5, actor=self.client_user)

        self.assertFalse(Review.objects.exists())

    def test_other_user_unauthorized(self):
        for actor in (make_user(), self.professional.user, None):
            with self.subTest(actor=actor):
                with self.assertRaises(Unauthorized):
                    submit_review(self.hire.pk, 5, actor=actor)

    def test_authorization_checked_before_eligibility(self):
        hire = make_hire(client=self.client_user, professional=self.professional, status='pending')

        with self.assertRaises(Unauthorized):
            submit_review(hire.pk, 5, actor=make_user())

    def test_unknown_hire(self):
        with self.assertRaises(Hire.DoesNotExist):
            submit_review(999999, 5, actor=self.client_user)

    def test_rating_out_of_range(self):
        for rating in (0, 6):
            with self.subTest(rating=rating):
                with self.assertRaises(ValidationError):
                    submit_review(self.hire.pk, rating, actor=self.client_user)

        self.assertFalse(Review.objects.exists())

    def test_comment_too_long(self):
        with self.assertRaises(ValidationError):
            submit_review(self.hire.pk, 5, 'x' * 501, actor=self.client_user)

    def test_review_notifies_professional(self):
        with self.captureOnCommitCallbacks(execute=True):
            review = submit_review(self.hire.pk, 5, actor=self.client_user)

        notification = Notification.objects.get(type=Notification.Type.NUEVA_RESENA)
        self.assertEqual(notification.recipient, self.professional.user)
        self.assertEqual(notification.related_id, str(review.pk))
        self.assertEqual(notification.related_type, 'review')
        self.assertIn('Carla Cliente', notification.message)
        self.assertEqual(mail.outbox[0].to, [self.professional.user.email])


class GuestReviewTests(TestCase):

    def setUp(self):
        self.professional = make_professional()
        self.hire = make_hire(professional=self.professional, guest=True, status='completed')
        self.token = self.hire.review_token

    def test_guest_review_with_token(self):
        review = submit_guest_review(self.hire.pk, self.token, 5, 'Muy bien')

        self.assertTrue(review.is_guest_review)
        self.assertIsNone(review.client)
        self.assertEqual(review.guest_reviewer_name, 'Ana Invitada')

    def test_review_consumes_token(self):
        submit_guest_review(self.hire.pk, self.token, 5)

        self.hire.refresh_from_db()
        self.assertTrue(self.hire.reviewed_by_guest)
        with self.assertRaises(DuplicateError):
            submit_guest_review(self.hire.pk, self.token, 4)

    def test_wrong_token(self):
        with self.assertRaises(Unauthorized):
            submit_guest_review(self.hire.pk, 'guessed-token', 5)

        self.assertFalse(Review.objects.exists())

    def test_token_bound_to_its_hire(self):
        other = make_hire(professional=self.professional, guest=True, status='completed')

        with self.assertRaises(Unauthorized):
            submit_guest_review(self.hire.pk, other.review_token, 5)

    def test_client_hire_not_reviewable_by_token(self):
        hire = make_hire(client=make_user(), professional=self.professional, status='completed')

        with self.assertRaises(Unauthorized):
            submit_guest_review(hire.pk, self.token, 5)

    def test_guest_hire_not_completed(self):
        hire = make_hire(professional=self.professional, guest=True, status='waiting_client_approval')

        with self.assertRaises(NotEligibleError):
            submit_guest_review(hire.pk, hire.review_token, 5)

    def test_resolve_token(self):
        self.assertEqual(hire_for_review_token(self.token), self.hire)

        for token in ('', None, 'unknown'):
            with self.subTest(token=token):
                with self.assertRaises(Hire.DoesNotExist):
                    hire_for_review_token(token)


class GuestCompletionTests(TestCase):

    def setUp(self):
        self.professional = make_professional()

    def test_confirm_then_review(self):
        hire = make_hire(professional=self.professional, guest=True, status='waiting_client_approval')

        confirmed = confirm_completion_with_token(hire.review_token)
        self.assertEqual(confirmed.status, 'completed')

        submit_guest_review(hire.pk, hire.review_token, 5)
        hire.refresh_from_db()
        self.assertTrue(hire.reviewed_by_guest)
        self.assertEqual(self.professional.reviews.count(), 1)

    def test_confirm_notifies_professional(self):
        hire = make_hire(professional=self.professional, guest=True, status='waiting_client_approval')

        confirm_completion_with_token(hire.review_token)

        notification = Notification.objects.get(type=Notification.Type.APROBACION_COMPLETADO)
        self.assertEqual(notification.recipient, self.professional.user)
        self.assertIsNone(notification.sender)
        self.assertIn('Ana Invitada', notification.message)

    def test_confirm_unknown_token(self):
        with self.assertRaises(Hire.DoesNotExist):
            confirm_completion_with_token('unknown')
