"""Identity adapter over GitHub OAuth.

Exposes "is the visitor authenticated" and "begin sign-in" to the UI layer.
Identity data is owned by GitHub; this package only reads it and keeps it in
a signed cookie.
"""

from paywall.identity.github import GitHubIdentityProvider, User
from paywall.identity.session import SessionCodec, current_user, is_authenticated

__all__ = [
    "GitHubIdentityProvider",
    "SessionCodec",
    "User",
    "current_user",
    "is_authenticated",
]
