# Core module - shared components for the surebet tracker
# Contains: config, models, browser, session, storage, notifier, pipeline, scheduler

from .models import Surebet
from .config import ensure_env, load_settings, Settings
from .storage import SurebetSnapshot
from .notifier import TelegramNotifier
from .session import SessionManager
from .pipeline import ScrapePipeline, filter_surebets_by_threshold, process_and_alert
from .scheduler import RecurringScheduler, next_run_time

__all__ = [
    'Surebet',
    'ensure_env',
    'load_settings',
    'Settings',
    'SurebetSnapshot',
    'TelegramNotifier',
    'SessionManager',
    'ScrapePipeline',
    'filter_surebets_by_threshold',
    'process_and_alert',
    'RecurringScheduler',
    'next_run_time',
]
