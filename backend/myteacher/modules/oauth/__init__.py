"""OAuth providers"""

from .google_provider import GoogleOAuthProvider, google_oauth

__all__ = ["GoogleOAuthProvider", "google_oauth"]
