"""String enumerations persisted as text columns."""

from __future__ import annotations

from enum import Enum


class AuthMethodType(str, Enum):
    WALLET = "wallet"
    TWITTER = "twitter"


class CommentType(str, Enum):
    COMMENT = "comment"
    TOKEN_CALL_EXPLANATION = "token_call_explanation"


class VoteType(str, Enum):
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class ActivityType(str, Enum):
    COMMENT = "comment"
    POST = "post"
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"
    LOGIN = "login"
    PREDICTION = "prediction"


class BadgeCategory(str, Enum):
    STREAK = "streak"
    CONTENT = "content"
    ENGAGEMENT = "engagement"
    VOTING = "voting"
    RECEPTION = "reception"
    QUALITY = "quality"
    TOKEN_CALL = "token_call"
    TIPPING = "tipping"


class BadgeRequirement(str, Enum):
    CURRENT_STREAK = "current_streak"
    MAX_STREAK = "max_streak"
    POSTS_COUNT = "posts_count"
    COMMENTS_COUNT = "comments_count"
    UPVOTES_GIVEN_COUNT = "upvotes_given_count"
    UPVOTES_RECEIVED_COUNT = "upvotes_received_count"
    COMMENTS_RECEIVED_COUNT = "comments_received_count"
    COMMENT_MIN_UPVOTES = "comment_min_upvotes"
    POST_MIN_UPVOTES = "post_min_upvotes"
    FIRST_SUCCESSFUL_TOKEN_CALL = "first_successful_token_call"
    TOKEN_CALL_MOONSHOT_X = "token_call_moonshot_x"
    TOKEN_CALL_EARLY_BIRD_RATIO = "token_call_early_bird_ratio"
    TOKEN_CALL_SUCCESS_STREAK = "token_call_success_streak"
    SUCCESSFUL_TOKEN_CALL_COUNT = "successful_token_call_count"
    VERIFIED_TOKEN_CALL_COUNT = "verified_token_call_count"
    TOKEN_CALL_ACCURACY_RATE = "token_call_accuracy_rate"
    MANUAL = "manual"


class NotificationType(str, Enum):
    STREAK_AT_RISK = "streak_at_risk"
    STREAK_ACHIEVED = "streak_achieved"
    STREAK_BROKEN = "streak_broken"
    BADGE_EARNED = "badge_earned"
    LEADERBOARD_CHANGE = "leaderboard_change"
    REPUTATION_MILESTONE = "reputation_milestone"
    COMMENT_REPLY = "comment_reply"
    UPVOTE_RECEIVED = "upvote_received"
    SYSTEM = "system"
    TOKEN_CALL_VERIFIED = "token_call_verified"
    FOLLOWED_USER_PREDICTION = "followed_user_prediction"
    FOLLOWED_USER_COMMENT = "followed_user_comment"
    FOLLOWED_USER_VOTE = "followed_user_vote"
    COMMENT_MENTION = "comment_mention"
    TIP_RECEIVED = "tip_received"
    REFERRAL_SUCCESS = "referral_success"


class WatchlistFolderType(str, Enum):
    TOKEN = "token"
    USER = "user"


class TokenCallStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED_SUCCESS = "VERIFIED_SUCCESS"
    VERIFIED_FAIL = "VERIFIED_FAIL"
    ERROR = "ERROR"


class TipContentType(str, Enum):
    COMMENT = "comment"
    PROFILE = "profile"
    CALL = "call"


class SentimentType(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    RED_FLAG = "red_flag"
