#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import logging
import logging.config
import string
import sys
import threading
from datetime import datetime
from io import StringIO
from typing import Dict, Union, Optional

import colorama
import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder

from cephfs_provisioner.exception import UsageError

# Placeholder for events logged before the provisioner identity is known
NO_CONTEXT = '-'

_provisioner_context_lock = threading.Lock()
_provisioner_context: Dict[str, str] = {}


def bind_provisioner_context(*, identity: str, provisioner_name: str) -> None:
    """Adds the identity and the name of the running provisioner to all subsequent events.

    The context is process wide, so that events logged by worker and scheduler threads carry it, too.
    """
    with _provisioner_context_lock:
        _provisioner_context['identity'] = identity
        _provisioner_context['provisioner'] = provisioner_name


def unbind_provisioner_context() -> None:
    with _provisioner_context_lock:
        _provisioner_context.clear()


def _sl_processor_add_provisioner_context(_, __, event_dict: Dict) -> Dict:
    with _provisioner_context_lock:
        for key, value in _provisioner_context.items():
            event_dict.setdefault(key, value)
    event_dict.setdefault('identity', NO_CONTEXT)
    event_dict.setdefault('provisioner', NO_CONTEXT)
    return event_dict


_sl_processor_add_callsite = CallsiteParameterAdder(
    parameters=[
        CallsiteParameter.FILENAME,
        CallsiteParameter.LINENO,
        CallsiteParameter.FUNC_NAME,
        CallsiteParameter.PROCESS,
        CallsiteParameter.THREAD_NAME,
    ],
    additional_ignores=[__name__],
)

_sl_processor_timestamper = structlog.processors.TimeStamper(utc=True)

_sl_foreign_pre_chain = [
    structlog.stdlib.add_log_level,
    _sl_processor_timestamper,
    _sl_processor_add_callsite,
    _sl_processor_add_provisioner_context,
]

_sl_processors = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    _sl_processor_timestamper,
    _sl_processor_add_callsite,
    _sl_processor_add_provisioner_context,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
]

_LEVEL_COLORS = {
    'critical': colorama.Fore.RED,
    'exception': colorama.Fore.RED,
    'error': colorama.Fore.RED,
    'warn': colorama.Fore.YELLOW,
    'warning': colorama.Fore.YELLOW,
    'info': colorama.Fore.GREEN,
    'debug': colorama.Fore.WHITE,
    'notset': colorama.Back.RED,
}


class _FormatRenderer:
    """Renders an event with a str.format() template. Stack traces and exceptions are appended on separate lines."""

    def __init__(self, fmt: str, colors: bool = True) -> None:
        if colors:
            colorama.init()
            self._level_to_color = _LEVEL_COLORS
            self._reset = colorama.Style.RESET_ALL
        else:
            self._level_to_color = {}
            self._reset = ''

        self._vformat = string.Formatter().vformat
        self._fmt = fmt

    def __call__(self, _, __, event_dict: Dict) -> str:
        level = event_dict.get('level', '')
        event_dict['log_color'] = self._level_to_color.get(level, '')
        event_dict['log_color_reset'] = self._reset
        event_dict['level_uc'] = level.upper()
        if 'timestamp' in event_dict:
            event_dict['timestamp_local_ctime'] = datetime.fromtimestamp(event_dict['timestamp']).ctime()

        message = StringIO()
        message.write(self._vformat(self._fmt, [], event_dict))
        for key in ('stack', 'exception'):
            trace = event_dict.pop(key, None)
            if trace is not None:
                message.write('\n' + trace)
        message.write(self._reset)

        return message.getvalue()


_CONSOLE_FORMAT = '{log_color}{level_uc:>8s}: {event:s}'
_FILE_FORMAT = ('{timestamp_local_ctime} {process:d}/{thread_name:s} {filename:s}:{lineno:d} {level_uc:s} '
                '[{provisioner:s} {identity:s}] {event:s}')


def _formatter(processor) -> Dict:
    return {
        '()': structlog.stdlib.ProcessorFormatter,
        'processor': processor,
        'foreign_pre_chain': _sl_foreign_pre_chain,
    }


def _level_name(level: Union[int, str]) -> str:
    if isinstance(level, int):
        return logging.getLevelName(level)
    return level.upper()


def init_logging(*,
                 logfile: Optional[str] = None,
                 console_level: Union[int, str] = 'INFO',
                 console_formatter: str = 'json',
                 logfile_formatter: str = 'file') -> None:

    formatters = {
        'console-plain': _formatter(_FormatRenderer(colors=False, fmt=_CONSOLE_FORMAT)),
        'console-colored': _formatter(_FormatRenderer(colors=True, fmt=_CONSOLE_FORMAT)),
        'file': _formatter(_FormatRenderer(colors=False, fmt=_FILE_FORMAT)),
        'json': _formatter(structlog.processors.JSONRenderer()),
    }

    for formatter in (console_formatter, logfile_formatter):
        if formatter not in formatters:
            raise UsageError('Event formatter {} is unknown.'.format(formatter))

    console_level = _level_name(console_level)
    handlers: Dict[str, Dict] = {
        'console': {
            'level': console_level,
            'class': 'logging.StreamHandler',
            'formatter': console_formatter,
            'stream': 'ext://sys.stderr',
        },
    }
    if logfile is not None:
        # The log file gets at least everything on INFO
        handlers['file'] = {
            'level': min(logging.getLevelName(console_level), logging.INFO),
            'class': 'logging.handlers.WatchedFileHandler',
            'filename': logfile,
            'formatter': logfile_formatter,
        }

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': formatters,
        'handlers': handlers,
        'loggers': {
            '': {
                'handlers': list(handlers.keys()),
                'level': 'DEBUG',
                'propagate': True,
            },
        },
    })


# Source: https://stackoverflow.com/questions/6234405/logging-uncaught-exceptions-in-python/16993115#16993115
def _handle_exception(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    structlog.get_logger().error("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


sys.excepthook = _handle_exception

structlog.configure(
    processors=_sl_processors,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

init_logging()

# apscheduler logs every job execution on INFO, pykube's HTTP requests go through urllib3
logging.getLogger('apscheduler').setLevel(logging.WARN)
logging.getLogger('urllib3').setLevel(logging.WARN)
