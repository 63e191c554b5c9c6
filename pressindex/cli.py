import sys
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import List, Optional

import click
import yaml

from .config import DEFAULT_CONFIG_PATH, VALID_ENVIRONMENTS, DEFAULT_ENVIRONMENT, get_cms_credentials, get_logger
from .document_parser.html_splitter import HtmlSplitter, HEADING_TAGS
from .search_index.filters import map_into_filters
from .search_index.index_es import ElasticsearchIndex
from .sources.wordpress import WordPressSource
from .sync.config import SyncConfig, SiteConfig
from .sync.error_tracker import ConfigurationError, NotConnectedError, SyncException
from .sync.orchestrator import DocumentSyncOrchestrator, SyncOutcome
from .sync.reindexer import BulkReindexer, ReindexReport
from .sync.writer import RecordWriter

logger = get_logger(__name__)

EXIT_NOT_CONNECTED = 1
EXIT_CONFIGURATION = 2


def _exit_for(exc: SyncException) -> None:
    if isinstance(exc, ConfigurationError):
        click.secho(f"Configuration error: {exc.message}", fg='red', err=True)
        code = EXIT_CONFIGURATION
    elif isinstance(exc, NotConnectedError):
        click.secho(f"Not connected: {exc.message}", fg='yellow', err=True)
        code = EXIT_NOT_CONNECTED
    else:
        click.secho(f"Error: {exc.message}", fg='red', err=True)
        code = 1
    if exc.recovery_suggestion:
        click.echo(f"Hint: {exc.recovery_suggestion}", err=True)
    sys.exit(code)


def _select_sites(config: SyncConfig, site_id: Optional[str]) -> List[SiteConfig]:
    if site_id is not None:
        site = config.get_site(site_id)
        if site is None:
            raise ConfigurationError(f"Unknown site: {site_id}")
        return [site]
    sites = config.get_enabled_sites()
    if not sites:
        raise ConfigurationError("No enabled sites in configuration")
    return sites


def _build_source(config: SyncConfig, site: SiteConfig, environment: str) -> WordPressSource:
    return WordPressSource(
        site.base_url,
        types=config.indexable_types,
        site_id=site.id,
        auth=get_cms_credentials(environment),
    )


def _parse_types(types: Optional[str]) -> Optional[List[str]]:
    if not types:
        return None
    return [t.strip() for t in types.split(',') if t.strip()]


def common_options(fn):
    fn = click.option('--environment', type=click.Choice(VALID_ENVIRONMENTS), default=DEFAULT_ENVIRONMENT,
                      help='Environment whose index credentials are used')(fn)
    fn = click.option('--config', 'config_path', type=click.Path(dir_okay=False), default=str(DEFAULT_CONFIG_PATH),
                      help='Sync configuration YAML')(fn)
    return fn


@click.group()
def cli():
    """Keep a CMS corpus in sync with its search index."""
    pass


@cli.command(name='sync')
@click.argument('document_id')
@click.option('--site', 'site_id', default=None, help='Site the document belongs to (defaults to the first enabled site)')
@common_options
def sync(document_id, site_id, config_path, environment):
    """Sync one document by id."""
    try:
        config = SyncConfig.from_yaml(config_path)
        site = _select_sites(config, site_id)[0]
        index = ElasticsearchIndex.from_environment(environment)
        source = _build_source(config, site, environment)
        try:
            result = DocumentSyncOrchestrator(config, index, source).sync_document(document_id)
        finally:
            source.close()
    except SyncException as e:
        _exit_for(e)

    message = f"{result.document_id}: {result.outcome.value}"
    if result.records_written:
        message += f" ({result.records_written} records)"
    if result.reason:
        message += f" - {result.reason}"
    if result.error_message:
        message += f" - {result.error_message}"
    click.echo(message)
    if result.outcome == SyncOutcome.FAILED:
        sys.exit(1)


@cli.command(name='delete')
@click.argument('type_tag', metavar='TYPE')
@click.argument('document_id')
@click.option('--site', 'site_id', default=None, help='Site the document belonged to')
@common_options
def delete(type_tag, document_id, site_id, config_path, environment):
    """Remove every record of a deleted document."""
    try:
        config = SyncConfig.from_yaml(config_path)
        site = _select_sites(config, site_id)[0]
        index = ElasticsearchIndex.from_environment(environment)
        result = DocumentSyncOrchestrator(config, index, source=None).delete_document(type_tag, document_id, site.id)
    except SyncException as e:
        _exit_for(e)

    click.echo(f"{result.distinct_key}: {result.outcome.value}")
    if result.outcome == SyncOutcome.FAILED:
        click.echo(result.error_message, err=True)
        sys.exit(1)


def _run_cancellable(fn, cancel_event: threading.Event):
    """Run ``fn`` in a worker thread; Ctrl-C stops it after the current page."""
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(fn)
        while True:
            try:
                return future.result(timeout=0.5)
            except FutureTimeoutError:
                continue
            except KeyboardInterrupt:
                click.echo("\nStopping after the current page...", err=True)
                cancel_event.set()


@cli.command(name='reindex')
@click.option('--index', 'index_name', default=None, help='Index to write to (defaults to the configured one)')
@click.option('--types', default=None, help='Comma separated document types (defaults to the indexable types)')
@click.option('--clear', is_flag=True, default=False, help='Clear the index before reindexing')
@click.option('--site', 'site_id', default=None, help='Only reindex this site')
@common_options
def reindex(index_name, types, clear, site_id, config_path, environment):
    """Reindex the whole corpus."""
    cancel_event = threading.Event()
    try:
        config = SyncConfig.from_yaml(config_path)
        sites = _select_sites(config, site_id)
        index = ElasticsearchIndex.from_environment(environment)
        writer = RecordWriter(index)
        type_list = _parse_types(types)
        report = ReindexReport(index_name=index_name or config.index_name)

        for position, site in enumerate(sites):
            if cancel_event.is_set():
                break
            source = _build_source(config, site, environment)
            reindexer = BulkReindexer(config, index, source, writer=writer)
            label = f"Indexing {site.id or site.base_url}"
            try:
                with click.progressbar(length=1, label=label) as bar:
                    def on_progress(processed, total, bar=bar):
                        bar.length = max(total, processed, 1)
                        bar.update(processed - bar.pos)

                    site_report = _run_cancellable(
                        lambda: reindexer.reindex(index_name=index_name, types=type_list,
                                                  clear=clear and position == 0,
                                                  on_progress=on_progress, cancel_event=cancel_event),
                        cancel_event,
                    )
            finally:
                source.close()
            report.merge(site_report)
    except SyncException as e:
        _exit_for(e)

    click.echo(report.summary_line())
    for error in report.errors:
        click.echo(f"  {error}", err=True)
    if report.aborted:
        sys.exit(1)


@cli.command(name='clear')
@click.option('--index', 'index_name', default=None, help='Index to clear (defaults to the configured one)')
@click.option('--filter', 'filters', multiple=True, help='Only delete records where key=value (repeatable, AND-ed)')
@common_options
def clear(index_name, filters, config_path, environment):
    """Clear the index, or the records matching every --filter."""
    try:
        config = SyncConfig.from_yaml(config_path)
        index_name = index_name or config.index_name
        attributes = {}
        for item in filters:
            key, sep, value = item.partition('=')
            if not sep or not key.strip():
                raise ConfigurationError(f"Invalid filter '{item}', expected key=value")
            attributes[key.strip()] = value.strip()

        index = ElasticsearchIndex.from_environment(environment)
        if not index.is_reachable():
            raise NotConnectedError("Search index is not reachable")

        if attributes:
            deleted = index.delete_by_filter(index_name, map_into_filters(attributes))
            click.echo(f"Deleted {deleted} records from {index_name}")
        else:
            index.clear(index_name)
            click.echo(f"Cleared {index_name}")
    except SyncException as e:
        _exit_for(e)


@cli.command(name='test-connection')
@common_options
def test_connection(config_path, environment):
    """Check that the search index can be reached."""
    try:
        index = ElasticsearchIndex.from_environment(environment)
    except SyncException as e:
        _exit_for(e)
    if index.is_reachable():
        click.secho(f"Connected to the {environment} search index", fg='green')
    else:
        click.secho(f"The {environment} search index is not reachable", fg='yellow', err=True)
        sys.exit(EXIT_NOT_CONNECTED)


@cli.command(name='split')
@click.argument('file', type=click.File('r', encoding='utf-8'))
@click.option('--limit', type=int, default=None, help='Characters per fragment')
@click.option('--heading', type=click.Choice(HEADING_TAGS), default=None, help='Heading level that starts a fragment')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), default=None,
              help='Take splitter settings from this sync configuration')
def split(file, limit, heading, config_path):
    """Preview how an HTML file is split into records."""
    settings = {}
    if config_path:
        try:
            settings = SyncConfig.from_yaml(config_path).splitter.model_dump()
        except SyncException as e:
            _exit_for(e)
    if limit is not None:
        settings['content_limit'] = limit
    if heading is not None:
        settings['heading_level'] = heading

    try:
        splitter = HtmlSplitter(**settings)
    except ValueError as e:
        raise click.BadParameter(str(e))

    fragments = splitter.split(file.read())
    output = [{'subtitle': f.subtitle, 'content': f.content} for f in fragments]
    click.echo(yaml.dump(output, allow_unicode=True, sort_keys=False, default_flow_style=False))


def main():
    cli()


if __name__ == '__main__':
    main()
