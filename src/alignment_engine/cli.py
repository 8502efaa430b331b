"""CLI for the Requirement/Architecture Alignment Engine.

Runs alignment validation, recommendations, integrity sweeps, health checks
and project migrations against a Neo4j graph, or against a local JSON
snapshot when ``--snapshot`` is given.
"""

import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import click
from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from requirements_graph.analysis import KeywordRequirementAnalyzer
from requirements_graph.client import GraphClient
from requirements_graph.memory_store import InMemoryGraphStore
from requirements_graph.neo4j_store import Neo4jGraphStore
from requirements_graph.schema import AlignmentType, MappingType

from .app_logging import setup_logging
from .config import find_config_file, get_config, load_config, reset_config, save_default_config
from .engine import IntegrationEngine
from .schema import (
    HealthStatus,
    IntegrityIssue,
    MigrationOptions,
    MigrationResult,
    PhaseStatus,
    RecommendationResult,
    Severity,
)

console = Console()

ALIGNMENT_COLORS = {
    AlignmentType.FULLY_ALIGNED: "green",
    AlignmentType.PARTIALLY_ALIGNED: "yellow",
    AlignmentType.MISALIGNED: "red",
    AlignmentType.NOT_APPLICABLE: "dim",
}

HEALTH_COLORS = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.DEGRADED: "cyan",
    HealthStatus.WARNING: "yellow",
    HealthStatus.CRITICAL: "red",
}

SEVERITY_COLORS = {
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "dim",
}

PHASE_COLORS = {
    PhaseStatus.COMPLETED: "green",
    PhaseStatus.PARTIAL: "yellow",
    PhaseStatus.FAILED: "red",
}


@click.group()
@click.version_option(version="1.0.0", prog_name="alignment-engine")
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to an engine configuration YAML file"
)
@click.option(
    "--snapshot", "-s",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Use a local JSON snapshot instead of Neo4j (created if missing)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable debug logging"
)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], snapshot: Optional[Path], verbose: bool):
    """Requirement/Architecture Alignment and Recommendation Engine.

    Scores how well architecture decisions satisfy requirements, recommends
    patterns and technology stacks, and keeps the mapping graph consistent.
    """
    ctx.ensure_object(dict)

    if config_path:
        try:
            load_config(config_path)
        except Exception as e:
            console.print(f"[red]Error: Could not load config {config_path}: {e}[/red]")
            sys.exit(1)
    else:
        found = find_config_file()
        if found:
            try:
                load_config(found)
            except Exception as e:
                console.print(f"[yellow]Warning:[/yellow] Could not load config {found}: {e}")
                reset_config()
        else:
            reset_config()

    cfg = get_config()
    setup_logging(cfg.logging, verbose=verbose)
    ctx.obj["snapshot"] = snapshot


@contextmanager
def open_engine(ctx: click.Context, write_back: bool = False):
    """Yield an engine over the selected store.

    Snapshot stores are written back after a successful mutating command.
    """
    snapshot = ctx.obj.get("snapshot")
    if snapshot:
        store = InMemoryGraphStore.load(snapshot)
    else:
        store = Neo4jGraphStore(GraphClient())

    engine = IntegrationEngine(store)
    try:
        yield engine
    finally:
        engine.close()

    if write_back and snapshot:
        store.save(snapshot)


def output_json(result: BaseModel, out_path: Optional[Path] = None):
    """Output a result model as JSON."""
    json_str = result.model_dump_json(indent=2)

    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(json_str)
    else:
        print(json_str)


def fail(error: Exception):
    console.print(f"[red]Error: {error}[/red]")
    sys.exit(1)


json_option = click.option(
    "--json", "-j", "json_output",
    is_flag=True,
    help="Print the result as JSON"
)


# =============================================================================
# Setup
# =============================================================================

@main.command("init-schema")
@click.pass_context
def init_schema_cmd(ctx: click.Context):
    """Create Neo4j constraints and indexes."""
    if ctx.obj.get("snapshot"):
        console.print("[yellow]Snapshot stores need no schema; nothing to do.[/yellow]")
        return

    try:
        with GraphClient() as client:
            client.verify_connectivity()
            count = client.initialize_schema()
        console.print(f"[green]✓[/green] Schema initialized ({count} statements)")
    except Exception as e:
        fail(e)


@main.command("config-init")
@click.option(
    "--out", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default="alignment-config.yaml",
    help="Output path for the configuration file"
)
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite existing config file"
)
def config_init_cmd(out: Path, force: bool):
    """Generate a default engine configuration file.

    Example:
        alignment-engine config-init --out alignment-config.yaml
    """
    if out.exists() and not force:
        console.print(f"[red]Error: Config file already exists: {out}[/red]")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        save_default_config(out)
    except Exception as e:
        fail(e)

    console.print(f"[green]✓[/green] Config file created: {out}")
    console.print("\nEdit this file to customize:")
    console.print("  • thresholds - Alignment classification thresholds")
    console.print("  • validation_rules - Rule weights per requirement type")
    console.print("  • recommendation - Pattern weights and keyword dictionaries")
    console.print("\nThen use with: alignment-engine --config", str(out))


# =============================================================================
# Alignment and recommendations
# =============================================================================

@main.command("validate-alignment")
@click.argument("requirement_id")
@click.argument("decision_id")
@click.option("--assessed-by", default="cli", help="Recorded assessor")
@json_option
@click.pass_context
def validate_alignment_cmd(ctx: click.Context, requirement_id: str, decision_id: str, assessed_by: str, json_output: bool):
    """Score a requirement against an architecture decision and store the result."""
    try:
        with open_engine(ctx, write_back=True) as engine:
            alignment = engine.validate_alignment(requirement_id, decision_id, assessed_by)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(alignment)
        return

    color = ALIGNMENT_COLORS[alignment.alignment_type]
    console.print(Panel(
        f"Requirement: [bold]{alignment.requirement_id}[/bold]\n"
        f"Decision: [bold]{alignment.architecture_decision_id}[/bold]\n\n"
        f"Score: [bold]{alignment.alignment_score:.2f}[/bold]\n"
        f"Alignment: [{color}]{alignment.alignment_type.value}[/{color}]\n"
        f"Status: {alignment.validation_status.value}",
        title="Alignment",
    ))
    _print_bullets("Gaps", alignment.gaps, "yellow")
    _print_bullets("Recommendations", alignment.recommendations, "green")


@main.command("recommend")
@click.option("--project", "-p", "project_id", help="Recommend for every requirement of a project")
@click.option("--requirement", "-r", "requirement_ids", multiple=True, help="Requirement id (repeatable)")
@click.option("--out", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write JSON results to a file")
@json_option
@click.pass_context
def recommend_cmd(
    ctx: click.Context,
    project_id: Optional[str],
    requirement_ids: tuple,
    out: Optional[Path],
    json_output: bool,
):
    """Recommend architecture patterns and technology stacks.

    Example:
        alignment-engine --snapshot graph.json recommend -r req_1 -r req_2
    """
    if not project_id and not requirement_ids:
        console.print("[red]Error: Specify --project or at least one --requirement[/red]")
        sys.exit(1)

    try:
        with open_engine(ctx) as engine:
            result = engine.generate_recommendations(
                requirement_ids=list(requirement_ids) or None,
                project_id=project_id,
            )
    except Exception as e:
        fail(e)

    if json_output or out:
        output_json(result, out)
        if out:
            console.print(f"[green]✓[/green] Results written to {out}")
        return

    display_recommendations(result)


@main.command("create-mapping")
@click.argument("requirement_id")
@click.option("--decision", "-d", "decision_id", help="Architecture decision id")
@click.option("--pattern", "-p", "pattern_id", help="Architecture pattern id")
@click.option("--stack", "-t", "stack_id", help="Technology stack id")
@click.option(
    "--type", "mapping_type",
    type=click.Choice([t.value for t in MappingType]),
    default=MappingType.DIRECT.value,
    help="Mapping type"
)
@click.option("--confidence", type=float, default=1.0, help="Mapping confidence")
@click.option("--rationale", default="", help="Why the requirement maps to the target")
@click.option("--created-by", default="cli", help="Recorded author")
@json_option
@click.pass_context
def create_mapping_cmd(
    ctx: click.Context,
    requirement_id: str,
    decision_id: Optional[str],
    pattern_id: Optional[str],
    stack_id: Optional[str],
    mapping_type: str,
    confidence: float,
    rationale: str,
    created_by: str,
    json_output: bool,
):
    """Link a requirement to a decision, pattern or technology stack."""
    try:
        with open_engine(ctx, write_back=True) as engine:
            mapping = engine.create_mapping(
                requirement_id,
                architecture_decision_id=decision_id,
                architecture_pattern_id=pattern_id,
                technology_stack_id=stack_id,
                mapping_type=MappingType(mapping_type),
                confidence=confidence,
                rationale=rationale,
                created_by=created_by,
            )
    except Exception as e:
        fail(e)

    if json_output:
        output_json(mapping)
        return
    console.print(f"[green]✓[/green] Created mapping [cyan]{mapping.id}[/cyan] for {mapping.requirement_id}")


@main.command("impact")
@click.argument("requirement_id")
@json_option
@click.pass_context
def impact_cmd(ctx: click.Context, requirement_id: str, json_output: bool):
    """Analyze what a change to a requirement would affect."""
    try:
        with open_engine(ctx) as engine:
            analysis = engine.analyze_requirement_impact(requirement_id)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(analysis)
        return

    risk = analysis.risk_assessment
    console.print(Panel(
        f"Requirement: [bold]{analysis.requirement_id}[/bold]\n\n"
        f"Complexity: {analysis.change_complexity.value}\n"
        f"Overall Risk: {risk.overall_risk.value}\n"
        f"Estimated Effort: {analysis.estimated_effort:.0f} hours",
        title="Impact Analysis",
    ))

    tree = Tree("[bold]Impacted Components[/bold]")
    for label, items in (
        ("Decisions", analysis.impacted_decisions),
        ("Patterns", analysis.impacted_patterns),
        ("Technology Stacks", analysis.impacted_technologies),
    ):
        branch = tree.add(f"{label} ({len(items)})")
        for item in items:
            branch.add(item)
    console.print(tree)

    if analysis.cascading_changes:
        table = Table(title="Cascading Changes", show_header=True, header_style="bold")
        table.add_column("Target", style="cyan", no_wrap=True)
        table.add_column("Change")
        table.add_column("Priority")
        table.add_column("Reason")
        for change in analysis.cascading_changes:
            target = f"{change.target_type.value}:{change.target_id}" if change.target_id else change.target_type.value
            table.add_row(target, change.change_type.value, change.priority.value, change.reason)
        console.print(table)

    _print_bullets("Mitigations", risk.mitigation_strategies, "green")
    if risk.contingency_plan:
        console.print(f"\n[dim]Contingency: {risk.contingency_plan}[/dim]")


# =============================================================================
# Integrity and health
# =============================================================================

@main.command("check-mapping")
@click.argument("mapping_id")
@click.option("--strict", is_flag=True, help="Exit with an error on HIGH severity issues")
@json_option
@click.pass_context
def check_mapping_cmd(ctx: click.Context, mapping_id: str, strict: bool, json_output: bool):
    """Check one mapping's references, alignment and confidence."""
    try:
        with open_engine(ctx) as engine:
            if strict:
                result = engine.integrity.require_consistent(mapping_id)
            else:
                result = engine.validate_mapping_consistency(mapping_id)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(result)
        return

    if result.is_consistent:
        console.print(f"[green]✓[/green] Mapping {mapping_id} is consistent")
        return

    color = SEVERITY_COLORS[result.overall_severity]
    console.print(f"Mapping {mapping_id}: [{color}]{result.overall_severity.value}[/{color}] severity")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Issue", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Component")
    table.add_column("Description")
    for issue in result.issues:
        color = SEVERITY_COLORS[issue.severity]
        table.add_row(
            issue.type.value, f"[{color}]{issue.severity.value}[/{color}]",
            issue.affected_component, issue.description,
        )
    console.print(table)
    _print_bullets("Recommendations", result.recommendations, "green")


@main.command("integrity")
@click.option("--project", "-p", "project_id", help="Restrict the sweep to one project")
@json_option
@click.pass_context
def integrity_cmd(ctx: click.Context, project_id: Optional[str], json_output: bool):
    """Sweep the mapping graph for integrity issues."""
    try:
        with open_engine(ctx) as engine:
            result = engine.validate_cross_module_integrity(project_id)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(result)
        return

    color = HEALTH_COLORS[result.overall_health]
    console.print(Panel(
        f"Health: [{color}]{result.overall_health.value}[/{color}]\n"
        f"Issues: {result.total_issues}\n"
        f"Mappings: {result.total_mappings} | Alignments: {result.total_alignments}",
        title=f"Integrity ({project_id or 'all projects'})",
    ))
    display_issues(result.issues)
    _print_bullets("Recommendations", result.recommendations, "green")


@main.command("auto-correct")
@click.option("--apply", "apply_changes", is_flag=True, help="Apply corrections (default is a dry run)")
@click.option("--project", "-p", "project_id", help="Restrict corrections to one project")
@json_option
@click.pass_context
def auto_correct_cmd(ctx: click.Context, apply_changes: bool, project_id: Optional[str], json_output: bool):
    """Delete orphaned mappings and auto-map uncovered requirements."""
    try:
        with open_engine(ctx, write_back=apply_changes) as engine:
            result = engine.auto_correct_integrity_issues(dry_run=not apply_changes, project_id=project_id)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(result)
        return

    mode = "[yellow]dry run[/yellow]" if result.dry_run else "[green]applied[/green]"
    console.print(f"\n[bold]Auto-correction[/bold] ({mode}): "
                  f"{result.total_corrections} planned, {result.applied_corrections} applied")
    if result.corrections:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Correction", style="cyan", no_wrap=True)
        table.add_column("Severity")
        table.add_column("Applied")
        table.add_column("Description")
        for action in result.corrections:
            table.add_row(
                action.type.value, action.severity.value,
                "[green]yes[/green]" if action.applied else "no", action.description,
            )
        console.print(table)
    _print_bullets("Errors", result.errors, "red")


@main.command("health")
@click.option("--project", "-p", "project_id", help="Restrict the check to one project")
@json_option
@click.pass_context
def health_cmd(ctx: click.Context, project_id: Optional[str], json_output: bool):
    """Report integration health with metrics and recommendations."""
    try:
        with open_engine(ctx) as engine:
            check = engine.perform_health_check(project_id)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(check)
        return

    color = HEALTH_COLORS[check.status]
    metrics = check.metrics
    console.print(Panel(
        f"Status: [bold {color}]{check.status.value}[/bold {color}]\n\n"
        f"Requirements: {metrics.total_requirements} "
        f"({metrics.mapped_requirements} mapped, {metrics.unmapped_requirements} unmapped)\n"
        f"Average Confidence: {metrics.average_confidence:.2f}\n"
        f"Validation Coverage: {metrics.validation_coverage:.0%}",
        title=f"Integration Health ({project_id or 'all projects'})",
    ))
    display_issues(check.issues)
    _print_bullets("Recommendations", check.recommendations, "green")


@main.command("metrics")
@click.option("--project", "-p", "project_id", help="Restrict metrics to one project")
@json_option
@click.pass_context
def metrics_cmd(ctx: click.Context, project_id: Optional[str], json_output: bool):
    """Show integration metrics."""
    try:
        with open_engine(ctx) as engine:
            metrics = engine.get_integration_metrics(project_id)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(metrics)
        return

    table = Table(title="Integration Metrics", show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    table.add_row("Total requirements", str(metrics.total_requirements))
    table.add_row("Mapped requirements", str(metrics.mapped_requirements))
    table.add_row("Unmapped requirements", str(metrics.unmapped_requirements))
    table.add_row("Total mappings", str(metrics.total_mappings))
    table.add_row("Average confidence", f"{metrics.average_confidence:.2f}")
    table.add_row("Validation coverage", f"{metrics.validation_coverage:.0%}")
    table.add_row("Recommendation accuracy", f"{metrics.recommendation_accuracy:.0%}")
    table.add_row("Implementation progress", f"{metrics.implementation_progress:.0%}")
    for name, count in sorted(metrics.alignment_distribution.items()):
        table.add_row(f"Alignments {name}", str(count))
    for name, count in sorted(metrics.mapping_type_distribution.items()):
        table.add_row(f"Mappings {name}", str(count))
    console.print(table)


# =============================================================================
# Migration
# =============================================================================

def migration_options(func):
    """Options shared by ``migrate`` and ``migrate-all``."""
    options = [
        click.option("--dry-run", is_flag=True, help="Plan the migration without writing"),
        click.option("--create-missing", is_flag=True, help="Create default patterns and stacks"),
        click.option("--validate/--no-validate", "validate", default=True, help="Validate alignments"),
        click.option("--threshold", type=float, help="Mapping confidence threshold"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _options(dry_run: bool, create_missing: bool, validate: bool, threshold: Optional[float]) -> MigrationOptions:
    return MigrationOptions(
        dry_run=dry_run,
        create_missing_components=create_missing,
        validate_alignments=validate,
        confidence_threshold=threshold,
        created_by="cli-migration",
    )


@main.command("migrate")
@click.argument("project_id")
@migration_options
@json_option
@click.pass_context
def migrate_cmd(
    ctx: click.Context,
    project_id: str,
    dry_run: bool,
    create_missing: bool,
    validate: bool,
    threshold: Optional[float],
    json_output: bool,
):
    """Backfill mappings and alignments for one project.

    Example:
        alignment-engine --snapshot graph.json migrate proj_1 --create-missing
    """
    options = _options(dry_run, create_missing, validate, threshold)
    try:
        with open_engine(ctx, write_back=not dry_run) as engine:
            result = engine.migrate_project_integration(project_id, options)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(result)
    else:
        display_migration(result)
    if not result.success:
        sys.exit(1)


@main.command("migrate-all")
@migration_options
@click.option("--strict", is_flag=True, help="Exit with an error if any project fails")
@json_option
@click.pass_context
def migrate_all_cmd(
    ctx: click.Context,
    dry_run: bool,
    create_missing: bool,
    validate: bool,
    threshold: Optional[float],
    strict: bool,
    json_output: bool,
):
    """Backfill mappings and alignments for every project."""
    options = _options(dry_run, create_missing, validate, threshold)
    try:
        with open_engine(ctx, write_back=not dry_run) as engine:
            batch = engine.migrate_all_projects(options)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(batch)
    else:
        table = Table(title="Project Migrations", show_header=True, header_style="bold")
        table.add_column("Project", style="cyan", no_wrap=True)
        table.add_column("Result")
        table.add_column("Mappings", justify="right")
        table.add_column("Alignments", justify="right")
        table.add_column("Quality", justify="right")
        for result in batch.results:
            table.add_row(
                result.project_id,
                "[green]success[/green]" if result.success else "[red]failed[/red]",
                str(result.statistics.mappings_created),
                str(result.statistics.alignments_validated),
                f"{result.quality_score:.2f}",
            )
        console.print(table)
        console.print(f"{batch.successful} of {batch.total_projects} projects migrated")

    if strict:
        try:
            batch.raise_for_failures()
        except Exception as e:
            fail(e)


@main.command("rollback")
@click.argument("project_id")
@click.option("--keep-components", is_flag=True, help="Keep auto-generated patterns and stacks")
@json_option
@click.pass_context
def rollback_cmd(ctx: click.Context, project_id: str, keep_components: bool, json_output: bool):
    """Remove a project's mappings, alignments and generated components."""
    try:
        with open_engine(ctx, write_back=True) as engine:
            result = engine.rollback_migration(project_id, remove_auto_components=not keep_components)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(result)
        return

    for action in result.actions:
        mark = "[green]✓[/green]" if action.success else "[red]✗[/red]"
        console.print(f"{mark} {action.description} ({action.count})")
    _print_bullets("Errors", result.errors, "red")
    if not result.success:
        sys.exit(1)


@main.command("export")
@click.argument("project_id")
@click.option("--out", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Output file (default: stdout)")
@click.pass_context
def export_cmd(ctx: click.Context, project_id: str, out: Optional[Path]):
    """Export a project's integration data as JSON."""
    try:
        with open_engine(ctx) as engine:
            document = engine.export_integration_data(project_id)
    except Exception as e:
        fail(e)

    output_json(document, out)
    if out:
        meta = document.metadata
        console.print(
            f"[green]✓[/green] Exported {meta.total_requirements} requirements, "
            f"{meta.total_mappings} mappings and {meta.total_alignments} alignments to {out}"
        )


@main.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--project", "-p", "project_id", help="Override the document's project id")
@json_option
@click.pass_context
def import_cmd(ctx: click.Context, file: Path, project_id: Optional[str], json_output: bool):
    """Import integration data exported by ``export``."""
    try:
        with open(file, "r", encoding="utf-8") as f:
            document = json.load(f)
        with open_engine(ctx, write_back=True) as engine:
            result = engine.import_integration_data(document, project_id)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(result)
    else:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Category", style="cyan", no_wrap=True)
        table.add_column("Imported", justify="right")
        table.add_column("Skipped", justify="right")
        for category in result.imported:
            table.add_row(category, str(result.imported[category]), str(result.skipped.get(category, 0)))
        console.print(table)
        _print_bullets("Warnings", result.warnings, "yellow")
        _print_bullets("Errors", result.errors, "red")
    if not result.success:
        sys.exit(1)


# =============================================================================
# Analysis
# =============================================================================

@main.command("analyze")
@click.argument("text")
@json_option
def analyze_cmd(text: str, json_output: bool):
    """Classify free requirement text and rate its quality."""
    try:
        analysis = KeywordRequirementAnalyzer().analyze(text)
    except Exception as e:
        fail(e)

    if json_output:
        output_json(analysis)
        return

    console.print(Panel(
        f"[bold]{analysis.suggested_title}[/bold]\n\n"
        f"Type: [cyan]{analysis.type.value}[/cyan]\n"
        f"Priority: {analysis.priority.value}\n"
        f"Completeness: {analysis.completeness_score:.2f} | Quality: {analysis.quality_score:.2f}",
        title="Requirement Analysis",
    ))
    if analysis.keywords:
        console.print(f"Keywords: {', '.join(analysis.keywords)}")
    if analysis.entities:
        console.print(f"Entities: {', '.join(analysis.entities)}")
    _print_bullets("Suggestions", analysis.suggestions, "yellow")


# =============================================================================
# Display helpers
# =============================================================================

def _print_bullets(title: str, items: list[str], color: str):
    if not items:
        return
    console.print(f"\n[bold]{title}:[/bold]")
    for item in items:
        console.print(f"  [{color}]•[/{color}] {item}")


def display_issues(issues: list[IntegrityIssue]):
    """Display integrity issues as a table."""
    if not issues:
        console.print("[green]✓[/green] No issues found")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Issue", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Count", justify="right")
    table.add_column("Description")
    for issue in issues:
        color = SEVERITY_COLORS[issue.severity]
        table.add_row(
            issue.type.value, f"[{color}]{issue.severity.value}[/{color}]",
            str(issue.count), issue.description,
        )
    console.print(table)


def display_recommendations(result: RecommendationResult):
    """Display recommendations in formatted text."""
    characteristics = result.characteristics
    strategy = result.implementation_strategy
    console.print(Panel(
        f"Requirements: {len(result.requirement_ids)}\n"
        f"Scalability: {characteristics.scalability_needs.value} | "
        f"Integration: {characteristics.integration_complexity.value} | "
        f"Consistency: {characteristics.data_consistency_needs}\n"
        f"Approach: [bold cyan]{strategy.approach.value}[/bold cyan] "
        f"({strategy.complexity.value} complexity, {strategy.timeline})",
        title="Recommendation Summary",
    ))

    if result.patterns:
        table = Table(title="Patterns", show_header=True, header_style="bold")
        table.add_column("Pattern", style="cyan", no_wrap=True)
        table.add_column("Type")
        table.add_column("Score", justify="right")
        table.add_column("Complexity")
        for rec in result.patterns:
            table.add_row(
                rec.pattern.name, rec.pattern.type.value,
                f"{rec.applicability_score:.2f}", rec.implementation_complexity.value,
            )
        console.print(table)
    else:
        console.print("[yellow]No pattern met the applicability threshold[/yellow]")

    if result.technologies:
        table = Table(title="Technology Stacks", show_header=True, header_style="bold")
        table.add_column("Stack", style="cyan", no_wrap=True)
        table.add_column("Score", justify="right")
        table.add_column("Effort (h)", justify="right")
        table.add_column("Learning Curve")
        for rec in result.technologies:
            table.add_row(
                rec.stack.name, f"{rec.suitability_score:.2f}",
                f"{rec.implementation_effort:.0f}", rec.learning_curve_impact.value,
            )
        console.print(table)

    tree = Tree(f"[bold]Implementation Strategy[/bold] ({strategy.estimated_effort_hours:.0f} hours)")
    for phase in strategy.phases:
        branch = tree.add(f"[bold]{phase.name}[/bold] ({phase.duration_weeks} weeks)")
        for deliverable in phase.deliverables:
            branch.add(deliverable)
    if strategy.dependencies:
        dependencies = tree.add("[bold]Dependencies[/bold]")
        for dependency in strategy.dependencies:
            dependencies.add(dependency)
    console.print(tree)

    if result.constraints:
        console.print("\n[bold]Constraints:[/bold]")
        for constraint in result.constraints:
            marker = "[red]mandatory[/red]" if constraint.mandatory else "[dim]advisory[/dim]"
            console.print(f"  • {constraint.type.value}: {constraint.description} ({marker})")

    _print_bullets("Risk Mitigations", strategy.risk_mitigations, "yellow")


def display_migration(result: MigrationResult):
    """Display a project migration report."""
    status = "[green]success[/green]" if result.success else "[red]failed[/red]"
    if result.dry_run:
        status += " [yellow](dry run)[/yellow]"
    stats = result.statistics
    console.print(Panel(
        f"Project: [bold]{result.project_id}[/bold]  {status}\n\n"
        f"Requirements: {stats.requirements_processed} | Decisions: {stats.architecture_decisions_processed}\n"
        f"Mappings created: {stats.mappings_created} (skipped {stats.mappings_skipped})\n"
        f"Alignments validated: {stats.alignments_validated}\n"
        f"Quality score: {result.quality_score:.2f} | Duration: {result.total_duration_ms:.0f} ms",
        title="Migration",
    ))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Phase", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Errors", justify="right")
    for phase in result.phases:
        color = PHASE_COLORS[phase.status]
        table.add_row(
            phase.name, f"[{color}]{phase.status.value}[/{color}]",
            f"{phase.duration_ms:.0f}", str(len(phase.errors)),
        )
    console.print(table)
    _print_bullets("Errors", result.errors, "red")
    _print_bullets("Recommendations", result.recommendations, "green")


if __name__ == "__main__":
    main()
