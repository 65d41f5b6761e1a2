"""
Markdown rendering of a Decision for humans and CI logs.
"""

from typing import List

from ..models import Decision, Verdict

STATUS_LABELS = {
    Verdict.WRITE: "PASS",
    Verdict.REPAIR: "NEEDS REPAIR",
    Verdict.REJECT: "FAIL",
}


def format_violation_table(decision: Decision) -> str:
    if not decision.violations:
        return "*No violations.*"
    lines = [
        "| Field | Kind | Severity | Detail |",
        "|-------|------|----------|--------|",
    ]
    for v in decision.violations:
        lines.append(f"| `{v.field}` | {v.kind.value} | {v.severity.value} | {v.detail} |")
    return "\n".join(lines)


def render_markdown(decision: Decision) -> str:
    """
    Render a Decision as a Markdown report.

    Args:
        decision: Pipeline decision

    Returns:
        Markdown string
    """
    lines: List[str] = [
        "# Product Record Report",
        "",
        f"**Category**: `{decision.category_id}`",
        f"**Record**: `{decision.record_id or '-'}`",
        f"**Tier**: {decision.tier or '-'}",
        f"**Verdict**: {decision.verdict.value} ({STATUS_LABELS[decision.verdict]}, exit {decision.exit_code})",
        "",
        "## Violations",
        "",
        format_violation_table(decision),
    ]

    if decision.autofilled:
        lines += ["", "## Placeholders", ""]
        filled = decision.filled_specs or {}
        lines += [f"- `{name}`: {filled[name]!r}" if name in filled else f"- `{name}`" for name in decision.autofilled]
        lines += ["", "> These fields hold placeholders, not facts, and must be replaced before publishing."]

    if decision.changes:
        lines += ["", "## Normalization", ""]
        lines += [f"- `{c.field}`: {c.before!r} -> {c.after!r} ({c.reason})" for c in decision.changes]

    if decision.fired_rules:
        lines += ["", "## Rules Fired", "", ", ".join(f"`{r}`" for r in decision.fired_rules)]

    if decision.record is not None:
        scores = decision.record["scores"]
        lines += ["", "## Scores", "", "| " + " | ".join(scores) + " | overall |",
                  "|" + "---|" * (len(scores) + 1),
                  "| " + " | ".join(f"{v:.2f}" for v in scores.values()) + f" | {decision.record['overallScore']:.2f} |"]

    if decision.repair_prompt:
        lines += ["", "## Repair Prompt", "", "```", decision.repair_prompt, "```"]

    return "\n".join(lines) + "\n"
