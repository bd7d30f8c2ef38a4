"""
Run summary — plain-text rendering of a RunReport.

Colour is the CLI's business; this module only produces lines.
"""

from __future__ import annotations

from pathlib import Path

from macsetup.core.engine.orchestrator import RunReport
from macsetup.core.models.ledger import Classification
from macsetup.core.models.manifest import Settings

_MARKERS = {
    Classification.INSTALLED: "✓",
    Classification.ALREADY_PRESENT: "=",
    Classification.FAILED: "✗",
    Classification.SKIPPED_BY_USER: "⊘",
    Classification.SKIPPED_BY_TIMEOUT: "⏱",
    Classification.WOULD_APPLY: "→",
}

_ORDER = [
    Classification.INSTALLED,
    Classification.ALREADY_PRESENT,
    Classification.WOULD_APPLY,
    Classification.SKIPPED_BY_USER,
    Classification.SKIPPED_BY_TIMEOUT,
    Classification.FAILED,
]


def outcome_marker(classification: Classification) -> str:
    return _MARKERS.get(classification, "•")


def render_summary(report: RunReport) -> str:
    lines = ["", "Setup summary" + (" (dry run)" if report.dry_run else ""), ""]

    failed_checks = [p for p in report.preconditions if not p.ok]
    if failed_checks:
        lines.append("Preconditions failed:")
        for check in failed_checks:
            lines.append(f"  ✗ {check.name}: {check.message}")
        lines.append("")
        lines.append("Nothing was changed.")
        lines.append(f"Exit code: {report.exit_code}")
        return "\n".join(lines) + "\n"

    counts = report.ledger.counts()
    for classification in _ORDER:
        n = counts.get(classification.value, 0)
        if n:
            lines.append(f"  {outcome_marker(classification)} {classification.value:<20} {n}")
    if not counts:
        lines.append("  (nothing processed)")

    total_verified = len(report.verification_passed) + len(report.verification_failed)
    if total_verified:
        lines.append("")
        lines.append(
            f"Verification: {len(report.verification_passed)}/{total_verified} passed"
        )
        for rid in report.verification_failed:
            lines.append(f"  ✗ {rid}")

    failures = report.ledger.failures()
    if failures:
        lines.append("")
        lines.append("Failures:")
        for outcome in failures:
            tag = "required" if outcome.required else "optional"
            lines.append(f"  ✗ {outcome.descriptor_id} ({tag}): {outcome.detail}")

    lines.append("")
    lines.append(f"Exit code: {report.exit_code}")
    return "\n".join(lines) + "\n"


def render_next_steps(settings: Settings, backup_dir: Path | None = None) -> str:
    """Where things landed and what the operator does next."""
    lines = [
        f"Log file: {settings.log_file or '(none)'}",
        f"Backup directory: {backup_dir if backup_dir is not None else '(nothing backed up)'}",
        "",
        "Next steps:",
        "  1. Restart your terminal or run: source ~/.zshrc",
        "  2. Open iTerm2 and set it as the default terminal",
        "  3. Run 'p10k configure' to customize your prompt",
        f"  4. Review {settings.env_file} for your environment variables",
        "",
        "Important files:",
        f"  Environment variables: {settings.env_file} (mode 600)",
        f"  Ansible vault password: {settings.credentials_file} (mode 600)",
        f"  SSH keys: {settings.ssh_key_dir}/",
    ]
    return "\n".join(lines) + "\n"
