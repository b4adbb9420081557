"""
Flask CLI commands.

Commands:
- flask init-db: Create database tables
- flask repair-images MAPPING_CSV: Reassign brand/product images from a mapping file
"""

import uuid
import click
from omahub.database import db_session, create_all
from omahub.services.image_repair_service import read_mapping, plan_image_repairs, apply_image_repairs


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        create_all()
        click.echo(click.style('✅ Database tables created.', fg='green'))

    @app.cli.command('repair-images')
    @click.argument('mapping_csv', type=click.File('r', encoding='utf-8'))
    @click.option('--apply', 'apply_changes', is_flag=True, default=False, help='Write changes (default is a dry run)')
    @click.option('--check-storage', is_flag=True, default=False, help='Verify each image exists in object storage')
    def repair_images(mapping_csv, apply_changes, check_storage):
        """Reassign images from an explicit entity_type,entity_id,image mapping."""
        try:
            rows = read_mapping(mapping_csv)
        except ValueError as e:
            raise click.ClickException(str(e))

        storage = None
        if check_storage:
            from omahub.services.storage_service import get_storage_service
            storage = get_storage_service()

        plan = plan_image_repairs(db_session, rows, storage=storage)

        for error in plan['errors']:
            click.echo(click.style(
                f"❌ line {error.get('line')}: {error.get('entity_type')} {error.get('entity_id')} - {error['reason']}",
                fg='red'
            ))
        for change in plan['changes']:
            click.echo(
                f"   {change['entity_type']} {change['entity_id']}: "
                f"{change['old_image'] or '(none)'} -> {change['new_image']}"
            )

        batch_id = str(uuid.uuid4())
        try:
            applied = apply_image_repairs(db_session, plan, batch_id, dry_run=not apply_changes)
        except Exception as e:
            raise click.ClickException(f'Batch {batch_id} failed: {e}')

        click.echo(f"\nBatch: {batch_id}")
        click.echo(f"   Planned: {len(plan['changes'])}  Already applied: {len(plan['unchanged'])}  Errors: {len(plan['errors'])}")
        if apply_changes:
            click.echo(click.style(f'✅ {applied} image(s) updated.', fg='green', bold=True))
        else:
            click.echo(click.style('💡 Dry run - nothing changed. Re-run with --apply to write.', fg='yellow'))
