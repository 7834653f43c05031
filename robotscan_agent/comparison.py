from __future__ import annotations

from .config import ComparatorThresholds
from .models import (
    DIFFERENCE_TYPES,
    FILE_LABELS,
    TECHNICAL_FILE_KEYS,
    BotPermissionRow,
    ChangeDetectionResult,
    DiffStats,
    PermissionChange,
    Scan,
    ScanDifference,
    ScanResult,
)
from .robots_parser import permission_level

MISSING = "-"

_LEVEL_RANK = {"allow": 0, "partial": 1, "block": 2}
_TYPE_RANK = {t: i for i, t in enumerate(DIFFERENCE_TYPES)}


def _content_difference(kind: str, label: str, old: str | None, new: str | None) -> ScanDifference | None:
    if old == new:
        return None
    if old is not None and new is None:
        severity, description = "high", f"{label} was removed"
    elif old is None:
        severity, description = "low", f"{label} was added"
    else:
        severity, description = "medium", f"{label} content has changed"
    return ScanDifference(
        type=kind,
        severity=severity,
        field=label,
        description=description,
        old_value=old,
        new_value=new,
    )


def _summary_paths(summary: str) -> set[str]:
    """Paths listed in a summary: Allow exceptions for `block`, Disallow paths for `partial`."""
    s = summary.strip()
    if s.lower().startswith("disallow (allow:") and s.endswith(")"):
        listed = s[len("disallow (allow:"):-1]
    elif s.lower().startswith("disallow:"):
        listed = s[len("disallow:"):]
    else:
        return set()
    return {p.strip() for p in listed.split(",") if p.strip()}


def _permission_severity(old: str, new: str) -> str:
    if old == MISSING:
        return "low"
    if new == MISSING:
        return "medium"

    old_level = permission_level(old)
    new_level = permission_level(new)
    old_rank = _LEVEL_RANK.get(old_level, 0)
    new_rank = _LEVEL_RANK.get(new_level, 0)

    if new_level == "block" and old_rank < 2:
        return "high"
    if new_rank > old_rank:
        return "medium"
    if new_rank < old_rank:
        return "low"

    # Same level: compare the listed paths to tell widening from narrowing.
    old_paths, new_paths = _summary_paths(old), _summary_paths(new)
    if new_level == "block":
        # Fewer Allow exceptions narrows access.
        return "low" if new_paths >= old_paths else "medium"
    if new_level == "partial":
        # Fewer Disallow paths widens access.
        return "low" if new_paths < old_paths else "medium"
    return "low"


def _bot_differences(old: dict[str, str], new: dict[str, str]) -> list[ScanDifference]:
    out: list[ScanDifference] = []
    for bot in set(old) | set(new):
        a = old.get(bot, MISSING)
        b = new.get(bot, MISSING)
        if a == b:
            continue
        out.append(ScanDifference(
            type="bot_permission",
            severity=_permission_severity(a, b),
            field=bot,
            description=f"Bot permission changed for {bot}: {a} -> {b}",
            old_value=a,
            new_value=b,
        ))
    return out


def _file_differences(old: ScanResult, new: ScanResult) -> list[ScanDifference]:
    out: list[ScanDifference] = []
    for key in TECHNICAL_FILE_KEYS:
        was, now = old.file_found(key), new.file_found(key)
        if was == now:
            continue
        label = FILE_LABELS[key]
        if now:
            out.append(ScanDifference(
                type="file_added", severity="low", field=label,
                description=f"{label} is now published",
                old_value="Not found", new_value="Found",
            ))
        else:
            out.append(ScanDifference(
                type="file_removed", severity="high", field=label,
                description=f"{label} is no longer published",
                old_value="Found", new_value="Not found",
            ))
    return out


def _score_difference(old: int, new: int, thresholds: ComparatorThresholds) -> ScanDifference | None:
    if old == new:
        return None
    drop = old - new
    if drop >= thresholds.large_score_drop:
        severity = "high"
    elif drop >= thresholds.moderate_score_drop:
        severity = "medium"
    else:
        severity = "low"
    direction = "dropped" if drop > 0 else "rose"
    return ScanDifference(
        type="score_change",
        severity=severity,
        field="score",
        description=f"Score {direction} from {old} to {new}",
        old_value=str(old),
        new_value=str(new),
    )


def compare_scan_results(
    old_scan: Scan,
    new_scan: Scan,
    thresholds: ComparatorThresholds | None = None,
) -> list[ScanDifference]:
    """Deterministic, ordered differences between two snapshots.

    Grouped by type, then by case-insensitive field. Comparing a scan with
    itself yields an empty list.
    """
    thresholds = thresholds or ComparatorThresholds()
    diffs: list[ScanDifference] = []

    for kind, label in (("robots_txt", "robots.txt"), ("llms_txt", "llms.txt")):
        d = _content_difference(kind, label, old_scan.file_content(kind), new_scan.file_content(kind))
        if d is not None:
            diffs.append(d)

    diffs.extend(_bot_differences(old_scan.bot_permissions, new_scan.bot_permissions))
    diffs.extend(_file_differences(old_scan, new_scan))

    d = _score_difference(old_scan.score, new_scan.score, thresholds)
    if d is not None:
        diffs.append(d)

    diffs.sort(key=lambda d: (_TYPE_RANK[d.type], d.field.lower(), d.field))
    return diffs


def get_diff_stats(differences: list[ScanDifference]) -> DiffStats:
    by_type = {t: 0 for t in DIFFERENCE_TYPES}
    counts = {"high": 0, "medium": 0, "low": 0}
    for d in differences:
        by_type[d.type] += 1
        counts[d.severity] += 1
    return DiffStats(total=len(differences), by_type=by_type, **counts)


def compare_bot_permissions(a: dict[str, str], b: dict[str, str]) -> list[BotPermissionRow]:
    rows: list[BotPermissionRow] = []
    for bot in sorted(set(a) | set(b), key=lambda s: (s.lower(), s)):
        val_a = a.get(bot, MISSING)
        val_b = b.get(bot, MISSING)
        rows.append(BotPermissionRow(
            bot=bot,
            val_a=val_a,
            val_b=val_b,
            status="same" if val_a == val_b else "different",
        ))
    return rows


def _normalized(content: str | None) -> str:
    return (content or "").replace("\r\n", "\n").strip()


def detect_changes(previous: ScanResult, new: ScanResult) -> ChangeDetectionResult:
    """Monitoring view: whitespace-insensitive content checks plus newly seen errors."""
    robots_changed = _normalized(previous.robots_txt_content) != _normalized(new.robots_txt_content)
    llms_changed = _normalized(previous.llms_txt_content) != _normalized(new.llms_txt_content)

    permissions: dict[str, PermissionChange] = {}
    for bot in sorted(set(previous.bot_permissions) | set(new.bot_permissions)):
        old = previous.bot_permissions.get(bot)
        cur = new.bot_permissions.get(bot)
        if old == cur or (not old and not cur):
            continue
        permissions[bot] = PermissionChange(old=old or "Not set", new=cur or "Removed")

    new_errors = [e for e in new.errors if e not in previous.errors]

    return ChangeDetectionResult(
        has_changes=robots_changed or llms_changed or bool(permissions) or bool(new_errors),
        robots_txt_changed=robots_changed,
        llms_txt_changed=llms_changed,
        bot_permissions_changed=permissions,
        new_errors=new_errors,
    )
