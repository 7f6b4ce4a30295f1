"""
Rate limits for the invitation and join endpoints.

Fixed-window counters keyed by client address. A guard against brute
forcing codes and spamming invites, not a security boundary.
"""

from django.conf import settings
from django.core.cache import caches
from rest_framework.throttling import SimpleRateThrottle


class ClientAddressRateThrottle(SimpleRateThrottle):
    """
    Throttle by client address in the cache named by THROTTLE_CACHE_ALIAS.

    Subclasses set ``scope``; rates come from DEFAULT_THROTTLE_RATES.
    """

    cache = caches[settings.THROTTLE_CACHE_ALIAS]

    def get_cache_key(self, request, view):
        return self.cache_format % {
            'scope': self.scope,
            'ident': self.get_ident(request),
        }


class JoinRateThrottle(ClientAddressRateThrottle):
    scope = 'join'


class InvitationRateThrottle(ClientAddressRateThrottle):
    scope = 'invitations'


class AcceptInvitationRateThrottle(ClientAddressRateThrottle):
    scope = 'invitation_accept'
