"""Render copy-paste prompts for coding assistants from a finished report."""

from researcher.models.report import PromptType, Report

# Index of each single prompt in Report.coding_prompts
PROMPT_INDEX: dict[str, int] = {"setup": 0, "feature": 1, "dashboard": 2}


def render_prompt(report: Report, prompt_type: PromptType = "full") -> str:
    """Return one coding prompt, or the full scaffolding document.

    A missing prompt renders as an empty string.
    """
    if prompt_type == "full":
        return render_full_prompt(report)

    index = PROMPT_INDEX[prompt_type]
    if index < len(report.coding_prompts):
        return report.coding_prompts[index].prompt
    return ""


def render_full_prompt(report: Report) -> str:
    sections: list[str] = [
        f"""# UX Research Report: Frontend Scaffolding
Generated: {report.created_at.isoformat()}
Repository: {report.repo_url}

## Project Context
- **Target Audience:** {report.target_audience}
- **Core Problem:** {report.core_problem}
- **Application Type:** {report.context}

## Database Schema Summary"""
    ]

    for table in report.semantic_map.tables:
        block = f"### {table.name}\nFields: {', '.join(table.fields)}"
        if table.relationships:
            block += f"\nRelationships: {', '.join(table.relationships)}"
        sections.append(block)

    sections.append("\n## User Stories")
    for story in report.user_stories:
        sections.append(
            f"- As a **{story.as_a}**, I want to **{story.i_want_to}** "
            f"so that **{story.so_that}** _(Mapped to: {story.mapped_to})_"
        )

    sections.append("\n## Recommended Component Stack")
    for rec in report.recommended_stack:
        sections.append(
            f"### {rec.registry} - {rec.component_name}\n"
            f"```bash\n{rec.install_command}\n```\n"
            f"_{rec.rationale}_"
        )

    sections.append("\n## Wireframe Specifications")
    for wireframe in report.wireframes:
        sections.append(f"### {wireframe.screen_name} ({wireframe.layout})\nZones:")
        for zone in wireframe.zones:
            components = ", ".join(zone.components or []) or "N/A"
            sections.append(f"- **{zone.name}** ({zone.type}): {components}")

    sections.append("\n---\n## Coding Prompts\n")
    for prompt in report.coding_prompts:
        sections.append(f"### {prompt.title}\n\n{prompt.prompt}\n")

    return "\n".join(sections)
