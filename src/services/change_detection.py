"""Content fingerprinting and change classification for note versions."""
import hashlib

from models.note_version import ChangeType

# Change types supplied explicitly by callers; these are always recorded and
# never inferred from a content comparison.
ALWAYS_RECORDED_CHANGE_TYPES = frozenset({
    ChangeType.CREATED,
    ChangeType.RESTORE,
    ChangeType.MERGE,
})


def generate_content_hash(content: str) -> str:
    """
    Fingerprint content for cheap equality checks.

    MD5 of the UTF-8 bytes. Not used for security or identity, only to detect
    saves that echo the previous state.
    """
    return hashlib.md5(content.encode("utf-8")).hexdigest()  # noqa: S324


def has_significant_change(
    old_content: str,
    new_content: str,
    old_title: str,
    new_title: str,
) -> bool:
    """
    Check whether an edit differs from the last recorded state.

    A title change always counts. Otherwise the content hashes are compared.

    Returns:
        False only when both title and content are identical.
    """
    if old_title != new_title:
        return True
    return generate_content_hash(old_content) != generate_content_hash(new_content)


def detect_change_type(
    old_title: str,
    new_title: str,
    old_content: str,
    new_content: str,
) -> ChangeType:
    """Label an edit: TITLE when only the title changed, EDIT otherwise."""
    title_changed = old_title != new_title
    content_changed = generate_content_hash(old_content) != generate_content_hash(new_content)
    if title_changed and not content_changed:
        return ChangeType.TITLE
    return ChangeType.EDIT
