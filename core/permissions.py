"""
Custom permission classes for the services marketplace.
"""

from rest_framework import permissions


def professional_profile_of(user):
    """Return the user's Professional profile or None."""
    if not user or not user.is_authenticated:
        return None
    return getattr(user, 'professional_profile', None)


class IsProfessional(permissions.BasePermission):
    """
    Permission class that allows only users with a professional profile.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsProfessional]
    """

    message = 'Only professionals can perform this action.'

    def has_permission(self, request, view):
        return professional_profile_of(request.user) is not None


class IsHireParticipant(permissions.BasePermission):
    """
    Object-level permission for hires.

    The hire's client and the user behind the assigned professional are
    participants. Which of them may perform a given status change is decided
    by the lifecycle service; this only keeps third parties out.
    """

    message = 'You do not have permission to modify this hire.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if not request.user or not request.user.is_authenticated:
            return False

        if obj.client_id is not None and obj.client_id == request.user.id:
            return True

        profile = professional_profile_of(request.user)
        return profile is not None and obj.professional_id == profile.pk
