"""Reconcilers for gluebuddy."""

from gluebuddy.reconcilers.base import Reconciler
from gluebuddy.reconcilers.membership import AccessPolicy, MembershipReconciler, MembershipUnit
from gluebuddy.reconcilers.protection import ProtectionReconciler
from gluebuddy.reconcilers.settings import (
    GENERIC_PROFILE,
    PACKAGING_PROFILE,
    GroupSettingsReconciler,
    ProjectSettingsReconciler,
    SettingsProfile,
    select_profile,
)

__all__ = [
    "Reconciler",
    "AccessPolicy",
    "MembershipReconciler",
    "MembershipUnit",
    "ProtectionReconciler",
    "GroupSettingsReconciler",
    "ProjectSettingsReconciler",
    "SettingsProfile",
    "GENERIC_PROFILE",
    "PACKAGING_PROFILE",
    "select_profile",
]
