#!/usr/bin/env python3

# The logfile.
dflt_logfile = '/var/log/idlewatch/idlewatch.log'

# The default log level. Can be one of (in increasing levels of output):
# critical
# error
# warning
# info
# debug
# "debug" will log every skipped process and why. It's noisy.
dflt_loglevel = 'warning'

# Where the last cron run timestamp (and its lock) lives.
dflt_statedir = '/run/idlewatch'
statefile = 'lastrun'
lockfile = 'lastrun.lock'

# Kernel's list of tty drivers and the list of valid login shells.
dflt_drivers = '/proc/tty/drivers'
dflt_shells = '/etc/shells'

# The pty multiplexor. Every pts is opened through it, so it isn't a "terminal".
mux_control = '/dev/ptmx'

# Basenames of terminal multiplexer binaries. Only ONE level of nesting is resolved.
multiplexers = ('screen', 'tmux')

# Members of this group are admins; anyone else (other than root) is "ordinary".
admin_group = 'wheel'


class PolicyConfig(object):
    # All in seconds. These are NOT meant to be tuned per-host.
    warn_after = 600  # ordinary: warn and mark for kill
    kill_after = 1800  # ordinary: kill
    admin_warn = 900  # admin: first reminder
    admin_second = 1800  # admin: second reminder
    admin_repeat = 3600  # admin: hourly after that

    def __init__(self, all_users = False, all_ordinary = False, *args, **kwargs):
        # Look at every uid, not just root's.
        self.all_users = all_users
        # Apply the ordinary (killing) policy to everyone, admins included.
        self.all_ordinary = all_ordinary

    def __repr__(self):
        return('PolicyConfig(all_users = {0}, all_ordinary = {1})'.format(self.all_users, self.all_ordinary))
