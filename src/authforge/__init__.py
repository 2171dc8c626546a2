"""AuthForge - authentication and session management service.

Email/password login with account lockout, session-bound refresh token
rotation with replay detection, password reset, account recovery and
TOTP multi-factor authentication.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
