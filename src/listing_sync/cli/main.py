"""
listing-sync command line.

Thin wrapper wiring settings, repository and gateways into the sync,
diff, translation and preflight operations.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from ..catalog.locales import build_locale_matrix
from ..core.exceptions import ListingSyncError
from ..core.logging import configure_logging
from ..core.types import StoreId, StoreScope
from ..config.settings import Settings, load_settings
from ..diff.engine import DiffEngine
from ..jobs.preflight import PreflightService
from ..jobs.runner import SyncJobRunner
from ..snapshot.sync import SnapshotSyncService
from ..storage.sqlite_repository import SqliteRepository
from ..translation.events import iter_ndjson
from ..translation.pipeline import TranslationPipeline, TranslationRequest, plan_translation_targets


logger = logging.getLogger(__name__)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _require_app(repo: SqliteRepository, app_id: int):
    app = repo.get_app(app_id)
    if app is None:
        raise ListingSyncError(f"App {app_id} not found")
    return app


def cmd_apps(args, settings: Settings, repo: SqliteRepository) -> int:
    if args.apps_command == "add":
        app = repo.create_app(
            args.name,
            source_locale=args.source_locale,
            asc_app_id=args.asc_app_id,
            android_package_name=args.package,
        )
        _print_json({"id": app.id, "name": app.name, "source_locale": app.source_locale})
        return 0

    _print_json([
        {
            "id": app.id,
            "name": app.name,
            "source_locale": app.source_locale,
            "asc_app_id": app.asc_app_id,
            "android_package_name": app.android_package_name,
        }
        for app in repo.list_apps()
    ])
    return 0


def cmd_snapshot(args, settings: Settings, repo: SqliteRepository) -> int:
    app = _require_app(repo, args.app_id)
    service = SnapshotSyncService(repo, settings.build_gateways())
    report = service.sync(app, StoreScope(args.scope))
    _print_json(report.to_dict())
    return 0 if report.ok else 2


def cmd_matrix(args, settings: Settings, repo: SqliteRepository) -> int:
    app = _require_app(repo, args.app_id)
    rows = build_locale_matrix(
        repo.list_locales(app.id, StoreId.APP_STORE),
        repo.list_locales(app.id, StoreId.PLAY_STORE),
    )
    _print_json([row.to_dict() for row in rows])
    return 0


def cmd_diff(args, settings: Settings, repo: SqliteRepository) -> int:
    app = _require_app(repo, args.app_id)
    source = StoreId(args.source)
    target = source.other
    report = DiffEngine().diff_stores(
        source,
        repo.list_locale_details(app.id, source),
        target,
        repo.list_locale_details(app.id, target),
        target_locales=repo.list_locales(app.id, target),
        locales=args.locales,
    )
    _print_json(report.to_dict())
    return 0


def cmd_translate(args, settings: Settings, repo: SqliteRepository) -> int:
    app = _require_app(repo, args.app_id)
    store = StoreId(args.store)
    source_detail = repo.get_locale_detail(app.id, store, app.source_locale)
    if source_detail is None:
        raise ListingSyncError(f"Source locale ({app.source_locale}) detail not found for {store.value}. Sync first.")

    details = repo.list_locale_details(app.id, store)
    work = plan_translation_targets(
        store, app.source_locale, source_detail, details,
        requested_locales=args.locales, include_existing=args.fill_gaps,
    )
    if not work:
        raise ListingSyncError("No target locales to translate.")

    config = settings.translation
    if args.style:
        config.style_instruction = args.style
    if args.strict:
        config.strict_limits = True

    pipeline = TranslationPipeline(settings.build_text_client(), config)
    request = TranslationRequest(
        store=store,
        source_locale=app.source_locale,
        source_fields=dict(source_detail.fields),
        work=work,
        existing_locales=set(repo.list_locales(app.id, store)),
    )
    for line in iter_ndjson(pipeline.translate_batch(request)):
        sys.stdout.write(line)
        sys.stdout.flush()
    return 0


def cmd_preflight(args, settings: Settings, repo: SqliteRepository) -> int:
    _require_app(repo, args.app_id)
    runner = SyncJobRunner(repo, PreflightService(repo, settings.build_gateways()))
    job = runner.submit(args.app_id, StoreScope(args.scope), {"include_remote": not args.no_remote})
    if not runner.wait_until_idle(timeout=args.timeout):
        logger.error(f"Job {job.id} did not finish within {args.timeout}s")
        return 1

    job = repo.get_job(job.id)
    result = job.to_dict()
    result["logs"] = [{"level": log.level, "message": log.message} for log in repo.list_logs(job.id)]
    _print_json(result)
    return 0 if job.status.value == "succeeded" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="listing-sync",
        description="Keep App Store and Google Play listing text in sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Register an app
  listing-sync apps add --name Acme --asc-app-id 123456 --package com.acme.app

  # Pull both storefronts into the local database
  listing-sync snapshot --app-id 1

  # Propose Play changes from App Store text
  listing-sync diff --app-id 1 --source app_store

  # Translate missing Play locales (NDJSON progress on stdout)
  listing-sync translate --app-id 1 --store play_store --locales de-DE fr-FR
        """,
    )
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--db", default=None, help="SQLite database path (overrides config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    apps_parser = subparsers.add_parser("apps", help="Manage apps")
    apps_sub = apps_parser.add_subparsers(dest="apps_command")
    add_parser = apps_sub.add_parser("add", help="Register an app")
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--source-locale", default="en-US")
    add_parser.add_argument("--asc-app-id", default=None)
    add_parser.add_argument("--package", default=None, help="Android package name")
    apps_sub.add_parser("list", help="List apps")

    scope_choices = [scope.value for scope in StoreScope]
    store_choices = [store.value for store in StoreId]

    snapshot_parser = subparsers.add_parser("snapshot", help="Fetch and persist storefront snapshots")
    snapshot_parser.add_argument("--app-id", type=int, required=True)
    snapshot_parser.add_argument("--scope", choices=scope_choices, default=StoreScope.BOTH.value)

    matrix_parser = subparsers.add_parser("matrix", help="Show the locale matrix")
    matrix_parser.add_argument("--app-id", type=int, required=True)

    diff_parser = subparsers.add_parser("diff", help="Diff one storefront against the other")
    diff_parser.add_argument("--app-id", type=int, required=True)
    diff_parser.add_argument("--source", choices=store_choices, default=StoreId.APP_STORE.value)
    diff_parser.add_argument("--locales", nargs="*", default=None)

    translate_parser = subparsers.add_parser("translate", help="Translate missing locales")
    translate_parser.add_argument("--app-id", type=int, required=True)
    translate_parser.add_argument("--store", choices=store_choices, required=True)
    translate_parser.add_argument("--locales", nargs="*", default=None)
    translate_parser.add_argument("--style", default=None, help="Style instruction for the text service")
    translate_parser.add_argument("--strict", action="store_true", help="Fail when a field stays over its limit")
    translate_parser.add_argument(
        "--fill-gaps", action="store_true",
        help="Also translate empty fields of locales that already exist",
    )

    preflight_parser = subparsers.add_parser("preflight", help="Run a preflight sync job")
    preflight_parser.add_argument("--app-id", type=int, required=True)
    preflight_parser.add_argument("--scope", choices=scope_choices, default=StoreScope.BOTH.value)
    preflight_parser.add_argument("--no-remote", action="store_true", help="Skip snapshot fetches")
    preflight_parser.add_argument("--timeout", type=float, default=300.0)

    return parser


COMMANDS = {
    "apps": cmd_apps,
    "snapshot": cmd_snapshot,
    "matrix": cmd_matrix,
    "diff": cmd_diff,
    "translate": cmd_translate,
    "preflight": cmd_preflight,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = load_settings(args.config)
    if args.db:
        settings.db_path = args.db
    configure_logging(
        level=logging.DEBUG if args.verbose else settings.log_level_value,
        structured=settings.log_structured,
    )

    repo = SqliteRepository(settings.db_path)
    try:
        return COMMANDS[args.command](args, settings, repo)
    except ListingSyncError as e:
        logger.error(str(e))
        return 1
    finally:
        repo.close()


if __name__ == "__main__":
    sys.exit(main())
