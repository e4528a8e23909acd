#!/usr/bin/env python3

import datetime
import logging
import signal
import socket
##
import psutil

logger = logging.getLogger('idlewatch')

_tsfmt = '%Y-%m-%d %H:%M:%S'


def humanDuration(seconds):
    seconds = max(0, int(seconds))
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if days:
        return('{0}d {1}h {2:02d}m {3:02d}s'.format(days, hours, minutes, seconds))
    if hours:
        return('{0}h {1:02d}m {2:02d}s'.format(hours, minutes, seconds))
    if minutes:
        return('{0}m {1:02d}s'.format(minutes, seconds))
    return('{0}s'.format(seconds))


def _ts(epoch):
    return(datetime.datetime.fromtimestamp(epoch).strftime(_tsfmt))


class Report(object):
    def __init__(self, resolved, decision, session = None, from_display = False, idle_since = None,
                 hostname = None):
        self.resolved = resolved
        self.decision = decision
        self.session = session
        self.from_display = from_display
        self.idle_since = idle_since
        self.hostname = (hostname if hostname else socket.gethostname())

    @property
    def origin(self):
        if self.from_display:
            return('X11 display {0}'.format(self.session.key))
        if not self.session:
            return('no login session')
        if self.session.host:
            return('remote from {0}'.format(self.session.host))
        return('local')

    def format(self):
        user = (self.session.user if self.session else '(unknown)')
        idle = humanDuration(self.decision.idle)
        if self.decision.might_kill:
            idle += ' ** TO BE KILLED **'
        lines = ['Idle shell on {0}: {1} (pid {2}, {3})'.format(self.hostname,
                                                                 self.resolved.exe,
                                                                 self.resolved.pid,
                                                                 self.origin),
                 '    user:       {0}'.format(user)]
        if self.idle_since is not None:
            lines.append('    idle since: {0}'.format(_ts(self.idle_since)))
        lines.append('    idle for:   {0}'.format(idle))
        if self.session and self.session.started:
            lines.append('    logged in:  {0}'.format(_ts(self.session.started)))
        lines.append('    terminal:   {0}'.format(self.resolved.short))
        return('\n'.join(lines))

    def __str__(self):
        return(self.format())


class Enforcer(object):
    def __init__(self, dryrun = False, tty_notify = False, out = None):
        self.dryrun = dryrun
        self.tty_notify = tty_notify
        self.out = out
        self.warned = 0
        self.killed = 0
        self.failed = 0

    def _print(self, msg):
        # Cron mails whatever we print.
        print(msg, file = self.out, flush = True)

    def warn(self, report):
        msg = report.format()
        self._print(msg)
        self.warned += 1
        logger.warning('Idle {0} shell pid {1} on {2} ({3}s)'.format(report.decision.classification,
                                                                   report.resolved.pid,
                                                                   report.resolved.short,
                                                                   report.decision.idle))
        if self.tty_notify and not self.dryrun:
            try:
                with open(report.resolved.tty, 'w') as fh:
                    fh.write('\r\n{0}\r\n'.format(msg.replace('\n', '\r\n')))
            except OSError as e:
                logger.info('Could not write warning to {0}: {1}'.format(report.resolved.tty, e))
        return()

    def kill(self, pid):
        if self.dryrun:
            self._print('(dry run) Would send SIGHUP to pid {0}'.format(pid))
            logger.info('Dry run; not killing pid {0}'.format(pid))
            return(True)
        try:
            psutil.Process(pid).send_signal(signal.SIGHUP)
        except (psutil.NoSuchProcess, psutil.AccessDenied, OSError) as e:
            # It might have exited between the snapshot and now.
            self.failed += 1
            self._print('Could not send SIGHUP to pid {0}: {1}'.format(pid, e))
            logger.error('Could not send SIGHUP to pid {0}: {1}'.format(pid, e))
            return(False)
        self.killed += 1
        self._print('Sent SIGHUP to pid {0}'.format(pid))
        logger.warning('Sent SIGHUP to pid {0}'.format(pid))
        return(True)
