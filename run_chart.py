#!/usr/bin/env python3
"""
PulseChart Launcher

Opens the chart workstation for one symbol.
"""

import sys
import argparse
import logging
from pathlib import Path
from datetime import datetime

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))


def setup_logging(log_dir: Path, level: str = 'INFO', debug: bool = False):
    """Set up logging configuration"""
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"pulse_chart_{timestamp}.log"

    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return log_file


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Launch the PulseChart workstation"
    )

    parser.add_argument(
        'symbol',
        nargs='?',
        default='AAPL',
        help='Symbol to chart (default: AAPL)'
    )

    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug logging'
    )

    parser.add_argument(
        '--api-url',
        type=str,
        help='Override the data feed base URL'
    )

    parser.add_argument(
        '--maximize', '-m',
        action='store_true',
        help='Start with maximized window'
    )

    return parser.parse_args(argv)


def check_dependencies():
    """Check if required dependencies are installed"""
    required = {
        'PyQt6': 'PyQt6',
        'pyqtgraph': 'pyqtgraph',
        'pandas': 'pandas',
        'requests': 'requests',
    }

    missing = []
    for module, package in required.items():
        try:
            __import__(module)
        except ImportError:
            missing.append(package)

    if missing:
        print("Error: Missing required dependencies:")
        for package in missing:
            print(f"  - {package}")
        print("\nInstall them using:")
        print(f"  pip install {' '.join(missing)}")
        sys.exit(1)


def main():
    """Main launcher function"""
    args = parse_arguments()
    check_dependencies()

    from pulse_chart.config import ChartConfig

    overrides = {'base_url': args.api_url} if args.api_url else {}
    config = ChartConfig(overrides)

    log_file = setup_logging(config.log_dir, config.log_level, debug=args.debug)
    logger = logging.getLogger(__name__)

    logger.info("=" * 50)
    logger.info("PulseChart Starting")
    logger.info("=" * 50)
    logger.info(f"Python Version: {sys.version}")
    logger.info(f"Feed: {config.base_url}")
    logger.info(f"Log File: {log_file}")
    logger.info(f"Arguments: {vars(args)}")
    logger.info("=" * 50)

    try:
        from PyQt6.QtWidgets import QApplication
        from PyQt6.QtCore import QT_VERSION_STR
        from pulse_chart.dashboard.chart_window import ChartWindow

        logger.info(f"PyQt6 Version: {QT_VERSION_STR}")

        app = QApplication(sys.argv)
        app.setApplicationName("PulseChart")
        app.setOrganizationName("Trading Tools")

        window = ChartWindow(args.symbol, config=config)
        window.resize(1280, 800)

        if args.maximize:
            window.showMaximized()
        else:
            window.show()

        logger.info(f"Chart for {window.symbol} launched")

        exit_code = app.exec()

        logger.info(f"Application exited with code: {exit_code}")
        sys.exit(exit_code)

    except Exception as e:
        logger.error(f"Failed to start chart: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
