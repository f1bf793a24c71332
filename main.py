"""Application entry point — wires services and launches the UI or the headless scheduler."""

from __future__ import annotations

import argparse
import sys
import threading

from loguru import logger

from app.config import get_config
from app.context import AppContext
from app.core.backup import BackupManager
from app.core.scanner import Scanner
from app.core.scheduler import BackupScheduler
from app.core.sync import SyncManager
from app.logger import install_crash_handler, setup_logger


def create_context() -> AppContext:
    """Wire all services and return an AppContext."""
    config = get_config()

    # Logger
    setup_logger(config.data_dir / "logs")
    install_crash_handler()

    # Core services
    scanner = Scanner(config)
    backup_manager = BackupManager(config)
    scheduler = BackupScheduler(config, scanner, backup_manager)
    sync_manager = SyncManager(config)
    scheduler.add_listener(sync_manager)

    return AppContext(
        config=config,
        scanner=scanner,
        backup_manager=backup_manager,
        scheduler=scheduler,
        sync_manager=sync_manager,
    )


def run_headless(ctx: AppContext, once: bool = False) -> int:
    """Run the scheduler without a GUI until interrupted."""
    if once:
        results = ctx.scheduler.perform_scheduled_scan()
        failed = [r for r in results if not r.success]
        logger.info(f"Backed up {len(results) - len(failed)} world(s), {len(failed)} failed")
        return 1 if failed else 0

    ctx.scheduler.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        ctx.scheduler.shutdown()
    return 0


def run_gui(ctx: AppContext) -> int:
    """Launch the Qt main window with the scheduler running in the background."""
    from PySide6.QtWidgets import QApplication

    from app.i18n import set_language
    from app.ui.main_window import MainWindow
    from app.ui.theme import apply_theme

    app = QApplication(sys.argv)
    app.setApplicationName("Minecraft World Backup")
    app.setOrganizationName("MinecraftWorldBackup")

    apply_theme(ctx.config.theme)
    set_language(ctx.config.language)

    window = MainWindow(ctx)
    if ctx.config.start_minimized:
        window.showMinimized()
    else:
        window.show()

    ctx.scheduler.start()
    return app.exec()


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    parser = argparse.ArgumentParser(description="Automatic Minecraft world backups")
    parser.add_argument("--headless", action="store_true", help="run the scheduler without a GUI")
    parser.add_argument("--once", action="store_true", help="perform a single scan and exit")
    args = parser.parse_args(argv)

    ctx = create_context()
    if args.headless or args.once:
        return run_headless(ctx, once=args.once)
    return run_gui(ctx)


if __name__ == "__main__":
    sys.exit(main())
