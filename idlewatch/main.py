#!/usr/bin/env python3

# Because:
#   - $TMOUT can be overridden (or just unset) by whoever is sitting at the shell
#   - SSH timeouts don't help with local consoles, and can be overridden client-side
# we go look at the terminals root shells are attached to and act on them ourselves.
# Meant to be run from cron (with -c) every few minutes.

import argparse
import logging
import os
import sys
import time
##
from idlewatch import config
from idlewatch import logger as _logger
from idlewatch import policy
from idlewatch import registries
from idlewatch.errors import FatalError
from idlewatch.notify import Enforcer, Report
from idlewatch.snapshot import ProcInfo, Snapshot
from idlewatch.throttle import CronThrottle

logger = logging.getLogger('idlewatch')


class IdleWatch(object):
    def __init__(self, cron = False, dryrun = False, all_users = False, all_ordinary = False,
                 tty_notify = False, statedir = config.dflt_statedir, drivers_file = config.dflt_drivers,
                 shells_file = config.dflt_shells, procinfo = None, sessions = None,
                 groups = registries.groupsOf, now = None, out = None, *args, **kwargs):
        self.cron = cron
        self.cfg = config.PolicyConfig(all_users = all_users, all_ordinary = all_ordinary)
        self.now = (now if now is not None else time.time())
        self.groups = groups
        self.decisions = []
        # These are fatal if they fail.
        self.drivers = registries.TerminalDrivers.load(drivers_file)
        self.shells = registries.Shells.load(shells_file)
        self.elapsed = 0
        if self.cron:
            self.throttle = CronThrottle(statedir)
            self.throttle.exchange(self.now)
            self.elapsed = self.throttle.elapsed
        self.procinfo = (procinfo if procinfo else ProcInfo())
        self.sessions = sessions
        self.enforcer = Enforcer(dryrun = dryrun, tty_notify = tty_notify, out = out)
        logger.debug('Initialized: cron = {0}, dryrun = {1}, {2}'.format(self.cron, dryrun, self.cfg))

    def getSessions(self):
        if self.sessions is not None:
            return(self.sessions)
        try:
            self.sessions = registries.SessionRegistry.load()
        except (OSError, RuntimeError) as e:
            # Everyone will classify as admin, so nobody gets killed. Good enough until next run.
            logger.error('Could not read login sessions: {0}'.format(e))
            self.sessions = registries.SessionRegistry()
        return(self.sessions)

    def candidates(self, snapshot):
        # Yields (resolved, idle seconds, mtime) for every shell worth looking at.
        for record in snapshot:
            if record.uid != 0 and not self.cfg.all_users:
                continue
            resolved = snapshot.resolve(record.pid, self.shells)
            if not resolved:
                continue
            try:
                mtime = self.procinfo.mtime(resolved.tty)
            except OSError as e:
                logger.debug('Could not stat {0} for pid {1}: {2}'.format(resolved.tty, record.pid, e))
                continue
            if snapshot.inDetachedMux(record.pid):
                continue
            yield(resolved, policy.clamp(self.now - mtime), mtime)

    def check(self, resolved, idle, mtime):
        session, from_display = self.getSessions().resolve(resolved.short, resolved.environ)
        classification = policy.classify((session.user if session else None),
                                         cfg = self.cfg,
                                         groups = self.groups)
        decision = policy.decide(idle, classification,
                                 cfg = self.cfg,
                                 cron = self.cron,
                                 elapsed = self.elapsed)
        logger.debug('pid {0} on {1}: {2}'.format(resolved.pid, resolved.short, decision))
        if decision.send_warning:
            self.enforcer.warn(Report(resolved, decision,
                                      session = session,
                                      from_display = from_display,
                                      idle_since = mtime))
        if decision.do_kill:
            self.enforcer.kill(resolved.pid)
        return(decision)

    def run(self):
        snapshot = Snapshot(self.procinfo, self.drivers)
        for resolved, idle, mtime in self.candidates(snapshot):
            self.decisions.append((resolved.pid, self.check(resolved, idle, mtime)))
        logger.info('Checked {0} shells: {1} warned, {2} killed, {3} kill failures'.format(len(self.decisions),
                                                                                        self.enforcer.warned,
                                                                                        self.enforcer.killed,
                                                                                        self.enforcer.failed))
        return(self.decisions)


def parseArgs():
    args = argparse.ArgumentParser(description = ('Warn about (and, for ordinary users, hang up) root shells '
                                                  'that have been sitting idle'))
    args.add_argument('-c', '--cron',
                      dest = 'cron',
                      action = 'store_true',
                      help = ('Run in cron mode: admins are only reminded once per threshold crossed '
                              '(15m, 30m, then hourly) instead of on every run'))
    args.add_argument('-n', '--dry-run',
                      dest = 'dryrun',
                      action = 'store_true',
                      help = 'Don\'t actually kill anything; just say what would be killed')
    args.add_argument('-a', '--all-users',
                      dest = 'all_users',
                      action = 'store_true',
                      help = 'Look at shells owned by any user, not just root')
    args.add_argument('-o', '--all-ordinary',
                      dest = 'all_ordinary',
                      action = 'store_true',
                      help = ('Treat everyone as an ordinary user (including admins). '
                              'THIS WILL KILL ADMIN SESSIONS. USE WITH CAUTION'))
    args.add_argument('-t', '--tty-notify',
                      dest = 'tty_notify',
                      action = 'store_true',
                      help = 'Also write warnings to the idle terminal itself')
    args.add_argument('-s', '--statedir',
                      dest = 'statedir',
                      default = config.dflt_statedir,
                      help = ('Where to keep the last run timestamp for cron mode. '
                              'The default is {0}').format(config.dflt_statedir))
    args.add_argument('-l', '--loglevel',
                      dest = 'loglevel',
                      default = config.dflt_loglevel,
                      choices = ['critical', 'error', 'warning', 'info', 'debug'],
                      help = 'The level of logging. The default is {0}'.format(config.dflt_loglevel))
    args.add_argument('-L', '--logfile',
                      dest = 'logfile',
                      default = config.dflt_logfile,
                      help = 'The path to the log file. The default is {0}'.format(config.dflt_logfile))
    args.add_argument('-D', '--no-disklog',
                      dest = 'disklog',
                      action = 'store_false',
                      help = 'Don\'t log to disk')
    args.add_argument('-v', '--verbose',
                      dest = 'verbose',
                      action = 'store_true',
                      help = 'Also log to stderr')
    return(args)


def main(argv = None):
    args = vars(parseArgs().parse_args(argv))
    try:
        _logger.log(loglvl = args['loglevel'], logfile = args['logfile'],
                    disklog = args['disklog'], verbose = args['verbose'])
    except OSError as e:
        print('Could not set up the log file ({0}); not logging to disk'.format(e), file = sys.stderr)
        _logger.log(loglvl = args['loglevel'], disklog = False, verbose = args['verbose'])
    if os.geteuid() != 0:
        logger.warning('Not running as root; other users\' processes will likely be skipped')
    try:
        w = IdleWatch(**args)
        w.run()
    except FatalError as e:
        logger.error('{0}'.format(e))
        print('ERROR: {0}'.format(e), file = sys.stderr)
        return(1)
    return(0)


if __name__ == '__main__':
    sys.exit(main())
