"""
Command line entry point for the locator self-healing pipeline.

Exit codes: 0 when there is nothing to heal or everything healed, 1 for
configuration errors and unreadable required artifacts, 2 when at least one
file failed to heal.
"""

import argparse
import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import List, Optional

from .core.config import ConfigurationError, Settings, get_settings
from .core.config_loader import get_healing_config
from .core.logging_config import setup_healing_logging
from .core.models import HealingConfiguration, HealSummary, IngestMode, RepairManifest
from .services.chrome_session_manager import ChromeSessionManager
from .services.code_generation_client import CodeGenerationClient
from .services.context_builder import MANIFEST_FILENAME, ContextBuilder, HealContext
from .services.failure_detection_service import FailureDetectionService
from .services.live_dom_verifier import LiveDomVerifier
from .services.repair_orchestrator import ManifestError, RepairOrchestrator, load_manifest
from .services.report_ingestor import ReportValidationError
from .services.test_code_updater import PageObjectUpdater


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_HEAL_FAILED = 2


def build_context(settings: Settings, config: HealingConfiguration) -> HealContext:
    """Ingest, classify and extract, then write heal-context.md and heal-data.json.

    Raises:
        ReportValidationError: If the run report is malformed
    """
    detection = FailureDetectionService(config)
    failures = detection.analyze_report(settings.CUCUMBER_REPORT_PATH)
    if failures:
        logger.info(f"Failure statistics: {detection.get_failure_statistics(failures)}")

    builder = ContextBuilder(
        project_root=settings.PROJECT_ROOT,
        output_dir=settings.ARTIFACTS_DIR,
        run_id=settings.GITHUB_RUN_ID,
        branch=settings.GITHUB_REF_NAME,
    )
    return builder.build(failures)


def _updater(settings: Settings, config: HealingConfiguration) -> PageObjectUpdater:
    return PageObjectUpdater(
        project_root=settings.PROJECT_ROOT,
        backup_dir=config.backup_dir if config.backup_enabled else None,
    )


def heal_manifest(settings: Settings, config: HealingConfiguration,
                  manifest: RepairManifest) -> HealSummary:
    """Repair every file of the manifest.

    Raises:
        MissingCredentialError: Before any file is touched, when the credential is absent
    """
    token = settings.require_token()
    client = CodeGenerationClient(
        endpoint=settings.CODEGEN_ENDPOINT,
        token=token,
        model=settings.CODEGEN_MODEL,
        temperature=settings.CODEGEN_TEMPERATURE,
        max_tokens=settings.CODEGEN_MAX_TOKENS,
        timeout=settings.CODEGEN_TIMEOUT,
    )
    orchestrator = RepairOrchestrator(
        client=client,
        updater=_updater(settings, config),
        config=config,
        output_dir=settings.ARTIFACTS_DIR,
        base_url=settings.BASE_URL,
        run_id=settings.GITHUB_RUN_ID,
    )
    try:
        return asyncio.run(orchestrator.heal(manifest))
    finally:
        client.close()


def _summary_exit_code(summary: HealSummary) -> int:
    if summary.succeeded:
        return EXIT_OK
    logger.error(f"{summary.files_failed} file(s) failed to heal")
    return EXIT_HEAL_FAILED


def command_context(settings: Settings, config: HealingConfiguration) -> int:
    build_context(settings, config)
    return EXIT_OK


def command_heal(settings: Settings, config: HealingConfiguration) -> int:
    manifest = load_manifest(str(Path(settings.ARTIFACTS_DIR) / MANIFEST_FILENAME))
    if manifest is None or not manifest.files:
        logger.info("No page object file identified. Nothing to heal.")
        return EXIT_OK
    return _summary_exit_code(heal_manifest(settings, config, manifest))


def command_run(settings: Settings, config: HealingConfiguration) -> int:
    context = build_context(settings, config)
    if context.is_empty or not context.manifest.files:
        logger.info("Nothing to heal.")
        return EXIT_OK
    return _summary_exit_code(heal_manifest(settings, config, context.manifest))


def command_verify_live(settings: Settings, config: HealingConfiguration) -> int:
    if not Path(settings.LIVE_CONTEXT_PATH).exists():
        logger.info("No healing context found")
        return EXIT_OK

    token = settings.require_token()
    client = CodeGenerationClient(
        endpoint=settings.CODEGEN_ENDPOINT,
        token=token,
        model=settings.LIVE_CODEGEN_MODEL,
        temperature=settings.LIVE_CODEGEN_TEMPERATURE,
        max_tokens=None,
        timeout=settings.CODEGEN_TIMEOUT,
    )
    sessions = ChromeSessionManager(config)
    verifier = LiveDomVerifier(
        sessions=sessions,
        client=client,
        updater=_updater(settings, config),
        config=config,
        base_url=settings.BASE_URL,
    )
    try:
        report = asyncio.run(verifier.run(settings.LIVE_CONTEXT_PATH))
    finally:
        sessions.shutdown()
        client.close()

    logger.info(f"Live verification: {len(report.broken)} broken, {len(report.applied)} applied, "
                f"{len(report.rejected)} rejected")
    return EXIT_HEAL_FAILED if report.error_message else EXIT_OK


def command_auto(settings: Settings, config: HealingConfiguration) -> int:
    """Pick the repair strategy from the inputs that exist."""
    if Path(settings.CUCUMBER_REPORT_PATH).exists():
        return command_run(settings, config)
    if Path(settings.LIVE_CONTEXT_PATH).exists():
        return command_verify_live(settings, config)
    logger.info("Neither a run report nor a failure note exists. Nothing to do.")
    return EXIT_OK


COMMANDS = {
    "context": command_context,
    "heal": command_heal,
    "run": command_run,
    "verify-live": command_verify_live,
    "auto": command_auto,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="self-heal",
        description="Repair stale UI locators reported by an end-to-end test run"
    )
    parser.add_argument(
        'command', choices=sorted(COMMANDS),
        help='Pipeline stage to run'
    )
    parser.add_argument(
        '--mode', choices=[mode.value for mode in IngestMode], default=None,
        help='Collect only the first failed step or all of them'
    )
    parser.add_argument(
        '--report', type=str, default=None,
        help='Path to the Cucumber JSON run report'
    )
    parser.add_argument(
        '--artifacts-dir', type=str, default=None,
        help='Directory for heal-context.md, heal-data.json and heal-summary.json'
    )
    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to the self-healing YAML configuration'
    )
    parser.add_argument(
        '--log-level', type=str, default=None,
        help='Logging level (DEBUG, INFO, WARNING, ERROR)'
    )
    return parser


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or get_settings()

    overrides = {}
    if args.report:
        overrides["CUCUMBER_REPORT_PATH"] = args.report
    if args.artifacts_dir:
        overrides["ARTIFACTS_DIR"] = args.artifacts_dir
    if args.config:
        overrides["SELF_HEALING_CONFIG_PATH"] = args.config
    if args.log_level:
        overrides["LOG_LEVEL"] = args.log_level.upper()
    if overrides:
        settings = settings.model_copy(update=overrides)

    setup_healing_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    try:
        config = get_healing_config(settings.SELF_HEALING_CONFIG_PATH)
        if args.mode:
            config = dataclasses.replace(config, ingest_mode=IngestMode(args.mode))
        return COMMANDS[args.command](settings, config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_ERROR
    except (ReportValidationError, ManifestError, ValueError, OSError) as e:
        logger.error(f"Required artifact is unreadable: {e}")
        return EXIT_ERROR
