"""Command-line interface for the CIF v3 client."""

import json
import logging
from datetime import datetime

import click
from tabulate import tabulate

from cifclient.client import CIFClient
from cifclient.config import load_config, save_config
from cifclient.connectors.cif_connector import CIFConnector
from cifclient.exceptions import CIFError
from cifclient.models.results import Boolean, Records, Scalar
from cifclient.normalization.timestamps import format_timestamp

logger = logging.getLogger(__name__)


def _json_default(value):
    """json.dumps fallback for normalized values"""
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    return str(value)


def _cell(value) -> str:
    """Render one record value for a table cell"""
    if value is None:
        return ''
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, (set, frozenset)):
        return ','.join(sorted(str(v) for v in value))
    if isinstance(value, (list, tuple)):
        return ','.join(str(v) for v in value)
    return str(value)


def render(result, output_format: str) -> None:
    """Print a normalized result (or raw payload) to stdout"""
    if isinstance(result, Records):
        rows = list(result)
        if output_format == 'json':
            click.echo(json.dumps(rows, indent=2, default=_json_default))
            return

        if not rows:
            click.secho("No results", fg='yellow')
            return

        # Records are sparse; use every key seen, in first-seen order
        headers = list(dict.fromkeys(key for row in rows for key in row))
        table_data = [[_cell(row.get(h)) for h in headers] for row in rows]
        click.echo(tabulate(table_data, headers=headers, tablefmt='grid'))

    elif isinstance(result, (Scalar, Boolean)):
        if output_format == 'json':
            click.echo(json.dumps(result.value))
        else:
            click.echo(str(result.value))

    else:
        # Raw mode: payload exactly as the remote sent it
        click.echo(json.dumps(result, indent=2, default=_json_default))


def _run(ctx, operation, *args, **kwargs):
    """Call a connector method and render its result, mapping client errors"""
    try:
        result = operation(*args, **kwargs)
    except CIFError as e:
        logger.debug(f"Command failed: {e}")
        raise click.ClickException(str(e)) from e
    render(result, ctx.obj['format'])


@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='Path to config file (default: ~/.cif.yml)')
@click.option('--remote', help='API base URL')
@click.option('--token', help='API token')
@click.option('--proxy', help='HTTP(S) proxy URL')
@click.option('--verbose', is_flag=True, help='Log requests and responses')
@click.option('--raw', is_flag=True, help='Print unmodified server payloads')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']), default='table',
              help='Output format (default: table)')
@click.pass_context
def cli(ctx, config_path, remote, token, proxy, verbose, raw, output_format):
    """
    CIF v3 client

    Query and manage indicators, feeds and tokens on a threat intel sharing
    server.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = load_config(config_path)
    except CIFError as e:
        raise click.ClickException(str(e)) from e

    overrides = {key: value for key, value in
                 {'remote': remote, 'token': token, 'proxy': proxy}.items() if value}
    if verbose:
        overrides['verbose'] = True
    if raw:
        overrides['raw'] = True

    ctx.ensure_object(dict)
    ctx.obj['config'] = config.model_copy(update=overrides)
    ctx.obj['config_path'] = config_path
    ctx.obj['format'] = output_format
    ctx.obj['connector'] = CIFConnector(CIFClient(ctx.obj['config']))


@cli.command()
@click.pass_context
def ping(ctx):
    """Check connectivity and token validity."""
    _run(ctx, ctx.obj['connector'].ping)


@cli.command()
@click.option('--indicator', '-q', help='Observable to search for')
@click.option('--itype', help='Indicator type (ipv4, fqdn, url, md5, ...)')
@click.option('--tags', multiple=True, help='Tag filter (repeatable)')
@click.option('--confidence', type=float, help='Minimum confidence')
@click.option('--provider', help='Provider filter')
@click.option('--limit', type=int, help='Maximum results to return')
@click.option('--no-feed', is_flag=True, help='Skip feed filtering on the server')
@click.pass_context
def search(ctx, indicator, itype, tags, confidence, provider, limit, no_feed):
    """Search indicators on the remote."""
    _run(ctx, ctx.obj['connector'].search_indicators,
         indicator=indicator, itype=itype, tags=list(tags) or None,
         confidence=confidence, provider=provider, limit=limit, no_feed=no_feed)


@cli.command()
@click.option('--itype', required=True, help='Indicator type of the feed')
@click.option('--tags', multiple=True, help='Tag filter (repeatable)')
@click.option('--confidence', type=float, help='Minimum confidence')
@click.option('--provider', help='Provider filter')
@click.option('--limit', type=int, help='Maximum results to return')
@click.pass_context
def feed(ctx, itype, tags, confidence, provider, limit):
    """Fetch a filtered, deduplicated feed."""
    _run(ctx, ctx.obj['connector'].get_feed,
         itype=itype, tags=list(tags) or None, confidence=confidence,
         provider=provider, limit=limit)


@cli.command()
@click.option('--indicator', required=True, help='Observable to submit')
@click.option('--group', multiple=True, default=['everyone'], show_default=True,
              help='Sharing group (repeatable)')
@click.option('--tlp', default='amber', show_default=True, help='TLP label')
@click.option('--tags', multiple=True, help='Tag (repeatable)')
@click.option('--confidence', type=float, help='Confidence score')
@click.option('--provider', help='Provider name')
@click.option('--description', help='Free-text description')
@click.pass_context
def submit(ctx, indicator, group, tlp, tags, confidence, provider, description):
    """Submit one indicator."""
    _run(ctx, ctx.obj['connector'].submit_indicator,
         indicator=indicator, group=list(group), tlp=tlp, tags=list(tags) or None,
         confidence=confidence, provider=provider, description=description)


@cli.command()
@click.option('--indicator', help='Observable to delete')
@click.option('--itype', help='Indicator type filter')
@click.option('--tags', multiple=True, help='Tag filter (repeatable)')
@click.option('--provider', help='Provider filter')
@click.pass_context
def delete(ctx, indicator, itype, tags, provider):
    """Delete indicators matching the given filters."""
    _run(ctx, ctx.obj['connector'].delete_indicators,
         indicator=indicator, itype=itype, tags=list(tags) or None, provider=provider)


@cli.group()
def tokens():
    """Manage API tokens."""


@tokens.command('list')
@click.option('--username', help='Only tokens of this user')
@click.pass_context
def tokens_list(ctx, username):
    """List tokens."""
    _run(ctx, ctx.obj['connector'].list_tokens, username=username)


@tokens.command('create')
@click.option('--username', required=True, help='Token owner')
@click.option('--groups', multiple=True, help='Group (repeatable, default: everyone)')
@click.option('--write', is_flag=True, help='Allow submissions')
@click.option('--admin', is_flag=True, help='Grant admin rights')
@click.pass_context
def tokens_create(ctx, username, groups, write, admin):
    """Create a token."""
    _run(ctx, ctx.obj['connector'].create_token,
         username=username, groups=list(groups) or None, write=write, admin=admin)


@tokens.command('delete')
@click.option('--username', help='Delete all tokens of this user')
@click.option('--token', 'token_value', help='Delete this token')
@click.pass_context
def tokens_delete(ctx, username, token_value):
    """Delete tokens."""
    _run(ctx, ctx.obj['connector'].delete_token, username=username, token=token_value)


@tokens.command('update')
@click.option('--token', 'token_value', required=True, help='Token to update')
@click.option('--groups', multiple=True, required=True, help='Group (repeatable)')
@click.pass_context
def tokens_update(ctx, token_value, groups):
    """Replace the groups of a token."""
    _run(ctx, ctx.obj['connector'].update_token, token=token_value, groups=list(groups))


@cli.command()
@click.pass_context
def configure(ctx):
    """Save the effective settings to the config file."""
    path = save_config(ctx.obj['config'], ctx.obj['config_path'])
    click.secho(f"Configuration written to {path}", fg='green')


def main():
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == '__main__':
    main()
