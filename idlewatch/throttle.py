#!/usr/bin/env python3

import fcntl
import logging
import os
##
from idlewatch import config
from idlewatch.errors import StateError
from idlewatch.policy import clamp

logger = logging.getLogger('idlewatch')


class CronThrottle(object):
    def __init__(self, statedir = config.dflt_statedir):
        self.statedir = os.path.abspath(os.path.expanduser(statedir))
        self.statefile = os.path.join(self.statedir, config.statefile)
        self.lockfile = os.path.join(self.statedir, config.lockfile)
        self.previous = None
        self.now = None

    def _read(self):
        if not os.path.isfile(self.statefile):
            return(0)
        with open(self.statefile, 'r') as fh:
            raw = fh.read().strip()
        if not raw:
            return(0)
        return(int(raw))

    def _write(self, now):
        tmp = '{0}.tmp'.format(self.statefile)
        with open(tmp, 'w') as fh:
            fh.write('{0}'.format(int(now)))
        os.replace(tmp, self.statefile)
        return()

    def exchange(self, now):
        # Swap in this run's timestamp, hand back the last one. 0 if there wasn't one.
        try:
            os.makedirs(self.statedir, exist_ok = True, mode = 0o700)
            lock = open(self.lockfile, 'a')
        except OSError as e:
            raise StateError('Could not open lock file {0}: {1}'.format(self.lockfile, e))
        try:
            fcntl.flock(lock, fcntl.LOCK_EX)
            try:
                self.previous = self._read()
                self._write(now)
            finally:
                fcntl.flock(lock, fcntl.LOCK_UN)
        except (OSError, ValueError) as e:
            raise StateError('Could not update last run state in {0}: {1}'.format(self.statedir, e))
        finally:
            lock.close()
        self.now = int(now)
        logger.debug('Previous cron run was at {0}; {1} seconds ago'.format(self.previous, self.elapsed))
        return(self.previous)

    @property
    def elapsed(self):
        if self.previous is None or self.now is None:
            return(0)
        return(clamp(self.now - self.previous))
