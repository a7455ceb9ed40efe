# =============================================================================
# core/decision.py - Absolute threshold policy
# =============================================================================

from core.models import ActionDecision, ActionTaken, NotificationStage, Thresholds

NO_ACTION = ActionDecision()


def decide_action(inactive_days: int, thresholds: Thresholds, deletion_enabled: bool = False) -> ActionDecision:
    """Pick the single highest tier reached; there is no carried-over stage between runs"""
    if inactive_days >= thresholds.delete:
        action = ActionTaken.DELETE if deletion_enabled else ActionTaken.DISABLE
        return ActionDecision(action, NotificationStage.DELETION)
    if inactive_days >= thresholds.disable:
        return ActionDecision(ActionTaken.DISABLE, NotificationStage.DISABLED)
    if inactive_days >= thresholds.warn:
        return ActionDecision(ActionTaken.NOTIFY, NotificationStage.WARNING)
    return NO_ACTION


def needs_disable_call(decision: ActionDecision, live_enabled: bool) -> bool:
    """Already-disabled accounts skip the disable call"""
    return decision.action == ActionTaken.DISABLE and live_enabled


def disabled_since_export(export_enabled, live_enabled: bool) -> bool:
    """True when the export said enabled but the account is disabled now"""
    return export_enabled is True and not live_enabled
