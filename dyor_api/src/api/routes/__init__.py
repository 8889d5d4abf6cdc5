"""
API route modules.

This package contains subrouters for:
- Auth: wallet sign-in, profile and logout
- Users and follows
- Wallets, tokens, comments and token calls
- Gamification, notifications, watchlists and tips
- Admin: badge management and token call verification

Routers are included from src.api.main (under the /api/v1 prefix).
"""
