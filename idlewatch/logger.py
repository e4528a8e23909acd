#!/usr/bin/env python3

import logging
import logging.handlers
import os
##
try:
    # https://www.freedesktop.org/software/systemd/python-systemd/journal.html#journalhandler-class
    from systemd import journal
    has_journald = True
except ImportError:
    has_journald = False
##
from idlewatch import config


class log(object):
    def __init__(self, loglvl = config.dflt_loglevel, logfile = config.dflt_logfile,
                 logname = 'idlewatch', disklog = True, verbose = False):
        # Loglevel mappings.
        self.loglvls = {'critical': logging.CRITICAL,
                        'error': logging.ERROR,
                        'warning': logging.WARNING,
                        'info': logging.INFO,
                        'debug': logging.DEBUG}
        self.loglvl = loglvl.lower()
        if self.loglvl not in self.loglvls:
            raise ValueError(('{0} is not one of: ' +
                              '{1}').format(loglvl,
                                            ', '.join(self.loglvls.keys())))
        self.Logger = logging.getLogger(logname)
        # Re-initializing (tests, mostly) shouldn't double up on handlers.
        for h in list(self.Logger.handlers):
            self.Logger.removeHandler(h)
            h.close()
        self.disklog = disklog
        self.verbose = verbose
        self.logfile = os.path.abspath(os.path.expanduser(logfile))
        if self.disklog:
            os.makedirs(os.path.dirname(self.logfile),
                        exist_ok = True,
                        mode = 0o700)
        self.chkSystemd()
        self.Logger.setLevel(self.loglvls[self.loglvl])
        self.log_handlers()

    def chkSystemd(self):
        # Add journald support if we're on systemd and have the bindings.
        self.systemd = False
        if not has_journald:
            return()
        _sysd_chk = ['/run/systemd/system',
                     '/dev/.run/systemd',
                     '/dev/.systemd']
        for _ in _sysd_chk:
            if os.path.isdir(_):
                self.systemd = True
                break
        return()

    def log_handlers(self):
        # Log formats
        _jrnlfmt = logging.Formatter(fmt = ('{levelname}: {message} ' +
                                            '({filename}:{lineno})'),
                                     style = '{',
                                     datefmt = '%Y-%m-%d %H:%M:%S')
        _logfmt = logging.Formatter(fmt = ('{asctime}:{levelname}: {message} (' +
                                           '{filename}:{lineno})'),
                                    style = '{',
                                    datefmt = '%Y-%m-%d %H:%M:%S')
        # Add handlers
        if self.disklog:
            _dflthandler = logging.handlers.RotatingFileHandler(self.logfile,
                                                                encoding = 'utf8',
                                                                # 10MB. Cron runs every few minutes, forever.
                                                                maxBytes = 10485760,
                                                                backupCount = 5)
            _dflthandler.setFormatter(_logfmt)
            _dflthandler.setLevel(self.loglvls[self.loglvl])
            self.Logger.addHandler(_dflthandler)
        if self.systemd:
            try:
                h = journal.JournaldLogHandler()
            except AttributeError:  # Uses the other version
                h = journal.JournalHandler()
            h.setFormatter(_jrnlfmt)
            h.setLevel(self.loglvls[self.loglvl])
            self.Logger.addHandler(h)
        if self.verbose:
            h = logging.StreamHandler()
            h.setFormatter(_logfmt)
            h.setLevel(self.loglvls[self.loglvl])
            self.Logger.addHandler(h)
        if not self.Logger.handlers:
            self.Logger.addHandler(logging.NullHandler())
        self.Logger.info('Logging initialized')
        return()
