"""System prompt for AI-generated report summaries."""

SUMMARY_SYSTEM_PROMPT = """You are an expert front-end QA engineer. Given the results of a visual QA run, produce a concise, actionable summary. Focus on:

1. Overall health: score, confidence and how many suites completed
2. Visual regressions: which scenarios and critical areas drifted from their baselines
3. Cross-suite problems: issues reported by several suites at once
4. Browser and device consistency
5. The most important next steps

Be specific and reference suite, scenario and area names. Write 3-6 sentences of plain text."""


def build_summary_prompt(report_json: str) -> str:
    """Build the user message for the summary AI call."""
    return (
        f"## Visual QA Results\n\n```json\n{report_json}\n```\n\n"
        f"Summarize these results for the team that owns the site."
    )
