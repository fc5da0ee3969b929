"""Retention policy for pruning note version history."""
import logging
from dataclasses import dataclass

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Every Nth version number is a milestone (kept when keep_milestones is set)
MILESTONE_INTERVAL = 10


@dataclass(frozen=True)
class RetentionPolicy:
    """
    Rules deciding which versions of a note may be deleted.

    A limit of None disables that rule. The newest version and the CREATED
    version are always kept regardless of these settings.
    """

    max_versions: int | None = 100
    max_age_days: int | None = 365
    keep_milestones: bool = True
    keep_first_version: bool = True


DEFAULT_RETENTION_POLICY = RetentionPolicy()


def retention_policy_from_settings(settings: Settings) -> RetentionPolicy:
    """
    Build the default policy from configuration.

    A configured limit of 0 disables that rule.

    Args:
        settings: Application settings.

    Returns:
        The configured RetentionPolicy.
    """
    return RetentionPolicy(
        max_versions=settings.retention_max_versions or None,
        max_age_days=settings.retention_max_age_days or None,
        keep_milestones=settings.retention_keep_milestones,
        keep_first_version=settings.retention_keep_first_version,
    )


def get_default_retention_policy() -> RetentionPolicy:
    """Get the retention policy configured for this deployment."""
    policy = retention_policy_from_settings(get_settings())
    if policy.max_versions is None and policy.max_age_days is None:
        logger.warning(
            "Retention policy has neither a count nor an age limit; nothing will be pruned",
        )
    return policy
