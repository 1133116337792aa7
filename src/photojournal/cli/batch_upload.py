import os
import sys

import structlog
from dotenv import load_dotenv
from invoke import Collection, Context, Program, task

from photojournal import __version__
from photojournal.api.client import ApiClient
from photojournal.error_handling import PhotoJournalError
from photojournal.logging_config import configure_structured_logging
from photojournal.models.upload import UploadCandidate
from photojournal.services.auth import AuthenticatedPrincipal, validate_owner_id
from photojournal.services.storage import get_storage_gateway
from photojournal.ui.handlers.upload import UploadOrchestrator

logger = structlog.get_logger()

SUPPORTED_EXTENSIONS = [".jpg", ".jpeg", ".png", ".webp", ".svg"]


def find_image_files(directory: str, recursive: bool = False) -> list[str]:
    """List supported image files under ``directory``, sorted by path."""
    image_files = []
    if recursive:
        for root, _, files in os.walk(directory):
            for name in files:
                if os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
                    image_files.append(os.path.join(root, name))
    else:
        for name in os.listdir(directory):
            path = os.path.join(directory, name)
            if os.path.isfile(path) and os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
                image_files.append(path)
    return sorted(image_files)


def chunked(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


@task
def batch_upload(
    c: Context,
    directory: str,
    user_id: str,
    api_url: str = "",
    token: str = "",
    env_file: str = ".env",
    recursive: bool = False,
    dry_run: bool = False,
    batch_size: int = 20,
    concurrency: int = 0,
):
    """
    Upload images from a local directory in batches.

    Args:
        c (Context): Invoke context.
        directory (str): Path to the directory containing images.
        user_id (str): Owner of the uploaded images.
        api_url (str): Upload through this photojournal API instead of the configured storage.
        token (str): Cloud IAP assertion sent with API requests.
        env_file (str): Path to the environment file. Default is '.env'.
        recursive (bool): Search for images in subdirectories. Default is False.
        dry_run (bool): If True, lists files to be processed without uploading. Default is False.
        batch_size (int): Files per batch. Default is 20.
        concurrency (int): Parallel uploads per batch. Defaults to UPLOAD_CONCURRENCY.

    Returns:
        dict: Counts of successful and failed uploads, or None if nothing ran.
    """
    # 1. Load environment variables
    if os.path.exists(env_file):
        load_dotenv(dotenv_path=env_file)
        logger.info("env_file_loaded", env_file=env_file)
    else:
        logger.warning("env_file_not_found", env_file=env_file)

    # 2. Validate arguments
    if not os.path.isdir(directory):
        logger.error("directory_not_found", directory=directory)
        return None
    if batch_size < 1:
        logger.error("invalid_batch_size", batch_size=batch_size)
        return None
    try:
        owner_id = validate_owner_id(user_id)
    except PhotoJournalError as e:
        logger.error("invalid_user_id", user_id=user_id, error=e.user_message)
        return None

    logger.info(
        "batch_upload_started",
        directory=directory,
        user_id=owner_id,
        api_url=api_url or None,
        recursive=recursive,
        dry_run=dry_run,
        batch_size=batch_size,
    )

    # 3. Find image files
    image_files = find_image_files(directory, recursive)
    if not image_files:
        logger.warning("no_image_files_found", directory=directory)
        return None

    batches = chunked(image_files, batch_size)
    logger.info("image_files_found", count=len(image_files), batches=len(batches))

    # 4. If dry-run, print files and exit
    if dry_run:
        print("\n--- Dry Run Mode: Files to be processed ---")
        for number, batch in enumerate(batches, start=1):
            print(f"Batch {number}:")
            for file_path in batch:
                print(f"- {file_path}")
        print("--- End of Dry Run ---")
        return {"successful": 0, "failed": 0, "total": len(image_files), "dry_run": True}

    # 5. Upload batch by batch
    if api_url:
        gateway = ApiClient(api_url)
        health = gateway.health_check()
        if health.get("status") != "healthy":
            logger.error("api_unhealthy", api_url=api_url, health=health)
            return None
    else:
        gateway = get_storage_gateway()
    principal = AuthenticatedPrincipal(user_id=owner_id, token=token or None)
    orchestrator = UploadOrchestrator(
        gateway,
        max_files=batch_size,
        concurrency=concurrency or None,
    )

    successful_uploads = 0
    failed_uploads = 0
    for number, batch in enumerate(batches, start=1):
        candidates = [UploadCandidate.from_path(path) for path in batch]
        report = orchestrator.run(candidates, principal)

        if not report.outcomes and report.error is not None:
            # Rejected before anything was sent
            logger.error("batch_rejected", batch=number, error=report.error_message)
            failed_uploads += len(batch)
            continue

        for outcome in report.outcomes:
            if outcome.succeeded:
                logger.info("upload_successful", filename=outcome.filename, url=outcome.stored_object.url)
            else:
                logger.error("upload_failed", filename=outcome.filename, error=outcome.error.user_message)
        successful_uploads += len(report.succeeded)
        failed_uploads += len(report.failed)

    logger.info(
        "batch_upload_finished",
        successful=successful_uploads,
        failed=failed_uploads,
        total=len(image_files),
    )
    print(f"\nBatch upload complete. Successful: {successful_uploads}, Failed: {failed_uploads}")
    return {"successful": successful_uploads, "failed": failed_uploads, "total": len(image_files), "dry_run": False}


namespace = Collection.from_module(sys.modules[__name__])
program = Program(namespace=namespace, version=__version__, name="photojournal-cli")


def main() -> None:
    configure_structured_logging()
    program.run()
