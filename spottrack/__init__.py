"""Bright-spot gimbal tracker 🔦🎯"""

__author__ = """spottrack contributors"""
__email__ = "info@spottrack.org"
__version__ = "v0.1.0"
__description__ = "Closed-loop bright-spot tracking for pan/tilt servo gimbals"

__package_name__ = "spottrack"
__github_username__ = "spottrack"
__repo_url__ = f"https://github.com/{__github_username__}/{__package_name__}/"
__repo_issues_url__ = f"{__repo_url__}issues"

from spottrack.system.logging_configuration.configure_logging import configure_logging
from spottrack.system.logging_configuration.log_levels import LogLevels

LOG_LEVEL = LogLevels.INFO
configure_logging(LOG_LEVEL)
