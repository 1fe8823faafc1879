"""CLI tools for quotedesk administration."""

import click

from quotedesk.db.enums import Role
from quotedesk.db.models import Membership, Organization, User
from quotedesk.db.session import SessionLocal
from quotedesk.services import quote_acceptance_service, quote_service


@click.group()
def cli():
    """Quotedesk CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
@click.option("--org-number", default=None, help="Swedish organisation number (XXXXXX-XXXX)")
@click.option("--admin-email", required=True, help="Admin email address")
@click.option("--admin-name", default="Admin", help="Admin display name")
def create_org(name: str, slug: str, org_number: str | None, admin_email: str, admin_name: str):
    """
    Create organization and its first admin user.

    Example:
        quotedesk create-org --name "Acme Bygg" --slug "acme" --admin-email "admin@acme.se"
    """
    db = SessionLocal()
    try:
        slug = slug.lower().strip()
        if not slug.replace("-", "").replace("_", "").isalnum():
            click.echo("❌ Slug must be alphanumeric (with optional hyphens/underscores)")
            return

        if db.query(Organization).filter(Organization.slug == slug).first():
            click.echo(f"❌ Organization with slug '{slug}' already exists")
            return

        email = admin_email.lower().strip()
        if db.query(User).filter(User.email == email).first():
            click.echo(f"❌ User {email} already exists")
            return

        org = Organization(name=name, slug=slug, org_number=org_number)
        db.add(org)
        db.flush()

        user = User(email=email, display_name=admin_name)
        db.add(user)
        db.flush()

        db.add(Membership(user_id=user.id, organization_id=org.id, role=Role.ADMIN.value))
        db.commit()

        click.echo(f"✓ Created organization: {name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {slug}")
        click.echo(f"✓ Created admin {email} (user ID: {user.id})")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise
    finally:
        db.close()


@cli.command()
@click.option("--org-slug", default=None, help="Limit to one organization")
@click.option("--relink", is_flag=True, help="Repair links for quotes whose order exists")
@click.option("--revert-orphans", is_flag=True, help="Return quotes with no order to 'sent'")
def reconcile_quotes(org_slug: str | None, relink: bool, revert_orphans: bool):
    """
    List accepted quotes without a valid linked order.

    These are left behind when order creation and its compensation both
    failed during a public acceptance.
    """
    db = SessionLocal()
    try:
        org_id = None
        if org_slug:
            org = db.query(Organization).filter(Organization.slug == org_slug).first()
            if not org:
                click.echo(f"❌ Organization '{org_slug}' not found")
                return
            org_id = org.id

        findings = quote_service.find_unlinked_accepted_quotes(db, org_id)
        if not findings:
            click.echo("✓ All accepted quotes are linked to their orders")
            return

        for quote, order in findings:
            if order:
                click.echo(f"  {quote.quote_number} ({quote.id}): order {order.id} exists, link missing")
                if relink:
                    quote_service.relink_order(db, quote, order)
                    click.echo("    ✓ relinked")
            else:
                click.echo(f"  {quote.quote_number} ({quote.id}): no order")
                if revert_orphans:
                    if quote_acceptance_service.compensate(db, quote.id, quote.organization_id):
                        click.echo("    ✓ returned to 'sent'")
                    else:
                        click.echo("    ❌ quote changed status, skipped")

        click.echo()
        click.echo(f"Found {len(findings)} quote(s) needing attention")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    cli()
