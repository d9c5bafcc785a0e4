"""
Tests for the custom DRF permission classes.
"""

import pytest
from django.contrib.auth.models import AnonymousUser
from rest_framework.test import APIRequestFactory

from core.permissions import IsHireParticipant, IsProfessional, professional_profile_of
from core.tests.factories import make_hire, make_professional, make_user


@pytest.fixture
def factory():
    """Provide a DRF request factory."""
    return APIRequestFactory()


@pytest.fixture
def client_user(db):
    return make_user(email='cliente@test.com')


@pytest.fixture
def professional(db):
    return make_professional()


@pytest.fixture
def hire(client_user, professional):
    return make_hire(client=client_user, professional=professional)


def _request(factory, user):
    request = factory.put('/api/hires/1/status/')
    request.user = user
    return request


@pytest.mark.django_db
class TestIsProfessional:

    def test_professional_allowed(self, factory, professional):
        assert IsProfessional().has_permission(_request(factory, professional.user), None)

    def test_client_denied(self, factory, client_user):
        assert not IsProfessional().has_permission(_request(factory, client_user), None)

    def test_anonymous_denied(self, factory):
        assert not IsProfessional().has_permission(_request(factory, AnonymousUser()), None)

    def test_profile_lookup(self, client_user, professional):
        assert professional_profile_of(professional.user) == professional
        assert professional_profile_of(client_user) is None
        assert professional_profile_of(AnonymousUser()) is None


@pytest.mark.django_db
class TestIsHireParticipant:

    def test_client_is_participant(self, factory, hire, client_user):
        assert IsHireParticipant().has_object_permission(_request(factory, client_user), None, hire)

    def test_assigned_professional_is_participant(self, factory, hire, professional):
        assert IsHireParticipant().has_object_permission(_request(factory, professional.user), None, hire)

    def test_other_professional_is_not(self, factory, hire):
        other = make_professional()

        assert not IsHireParticipant().has_object_permission(_request(factory, other.user), None, hire)

    def test_stranger_is_not(self, factory, hire):
        assert not IsHireParticipant().has_object_permission(_request(factory, make_user()), None, hire)

    def test_anonymous_is_not(self, factory, hire):
        request = _request(factory, AnonymousUser())

        assert not IsHireParticipant().has_permission(request, None)
        assert not IsHireParticipant().has_object_permission(request, None, hire)

    def test_open_request_only_visible_to_its_client(self, factory, client_user, professional):
        open_request = make_hire(client=client_user)

        assert IsHireParticipant().has_object_permission(_request(factory, client_user), None, open_request)
        assert not IsHireParticipant().has_object_permission(
            _request(factory, professional.user), None, open_request
        )
