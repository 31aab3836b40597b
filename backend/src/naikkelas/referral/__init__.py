"""Referral system module.

Two-level referral rewards:
- Direct inviter earns 75,000 IDR when someone signs up with their code
- The inviter's own inviter earns 25,000 IDR
"""

from naikkelas.referral.models import Referral, ReferralCode

__all__ = ["Referral", "ReferralCode"]
