"""Every mapped table, imported so Base.metadata knows about all of them."""

from naikkelas.auth.models import User
from naikkelas.chat.models import Chat, Message
from naikkelas.credits.models import UserCredits
from naikkelas.payments.models import TopupStatus, TopupTransaction
from naikkelas.referral.models import Referral, ReferralCode
from naikkelas.rewards.models import RewardTransaction, RewardType, UserReward

__all__ = [
    "Chat",
    "Message",
    "Referral",
    "ReferralCode",
    "RewardTransaction",
    "RewardType",
    "TopupStatus",
    "TopupTransaction",
    "User",
    "UserCredits",
    "UserReward",
]
