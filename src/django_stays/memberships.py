"""Membership lookups keyed by (property_id, user)."""

from .exceptions import MembershipNotFound, NotAuthorized
from .models import Membership


def get_membership(property_id, user, *, for_update: bool = False) -> Membership:
    """
    Direct keyed lookup of a user's membership in a property.

    Raises:
        MembershipNotFound: If the user is not a member.
    """
    qs = Membership.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(property_id=str(property_id), user=user)
    except Membership.DoesNotExist:
        raise MembershipNotFound(str(property_id), getattr(user, 'pk', user))


def is_master(property_id, user) -> bool:
    """True if the user holds a MASTER membership in the property."""
    return Membership.objects.filter(
        property_id=str(property_id),
        user=user,
        permission_level=Membership.PermissionLevel.MASTER,
    ).exists()


def require_master(property_id, user, action: str) -> Membership:
    """Return the caller's membership, or raise NotAuthorized unless it is MASTER."""
    membership = get_membership(property_id, user)
    if not membership.is_master:
        raise NotAuthorized(user.pk, action)
    return membership
