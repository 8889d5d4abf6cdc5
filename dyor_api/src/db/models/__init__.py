"""
ORM models for users, wallets, tokens, comments, token calls, gamification,
notifications, watchlists and tips.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .users import (  # noqa: F401
    AuthMethod,
    User,
    UserFollow,
    Wallet,
)
from .tokens import (  # noqa: F401
    Token,
    TokenSentiment,
    TokenWatchlist,
)
from .comments import (  # noqa: F401
    Comment,
    CommentVote,
)
from .token_calls import (  # noqa: F401
    TokenCall,
    UserTokenCallStreak,
)
from .gamification import (  # noqa: F401
    Badge,
    UserActivity,
    UserBadge,
    UserReputation,
    UserStreak,
)
from .notifications import (  # noqa: F401
    Notification,
    NotificationPreference,
)
from .watchlist import (  # noqa: F401
    TokenWatchlistFolderItem,
    UserWatchlistFolderItem,
    WatchlistFolder,
)
from .tips import Tip  # noqa: F401
