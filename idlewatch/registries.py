#!/usr/bin/env python3

import grp
import logging
import pwd
import re
##
import psutil
##
from idlewatch import config
from idlewatch.errors import RegistryError

logger = logging.getLogger('idlewatch')

# host:display[.screen], e.g. ":0", "localhost:10.0"
_display_re = re.compile(r'^(?P<display>[^:\s]*:[0-9]+)(\.[0-9]+)?$')
_ttynum_re = re.compile(r'^[0-9/]+$')


def stripDisplay(value):
    # Returns the display string without its screen suffix, or None if it isn't one.
    if not value:
        return(None)
    r = _display_re.search(value.strip())
    if not r:
        return(None)
    return(r.group('display'))


class TerminalDrivers(object):
    def __init__(self, prefixes):
        self.prefixes = tuple(prefixes)

    @classmethod
    def load(cls, path = config.dflt_drivers):
        # Format is "<driver name> <device prefix> <major> <minor range> <type>".
        prefixes = []
        try:
            with open(path, 'r') as fh:
                for line in fh.read().splitlines():
                    l = line.split()
                    if len(l) < 2:
                        continue
                    prefix = l[1]
                    if prefix == config.mux_control or prefix in prefixes:
                        continue
                    prefixes.append(prefix)
        except OSError as e:
            raise RegistryError('Could not read terminal driver list {0}: {1}'.format(path, e))
        if not prefixes:
            raise RegistryError('No terminal drivers found in {0}'.format(path))
        logger.debug('Terminal driver prefixes: {0}'.format(', '.join(prefixes)))
        return(cls(prefixes))

    def match(self, target):
        # "/dev/pts/3" matches "/dev/pts", "/dev/tty2" matches "/dev/tty"; "/dev/ttyUSB0" doesn't.
        if not target:
            return(False)
        for prefix in self.prefixes:
            if not target.startswith(prefix):
                continue
            if _ttynum_re.search(target[len(prefix):]):
                return(True)
        return(False)


class Shells(object):
    def __init__(self, paths):
        self.paths = frozenset(paths)

    @classmethod
    def load(cls, path = config.dflt_shells):
        paths = []
        try:
            with open(path, 'r') as fh:
                for line in fh.read().splitlines():
                    line = line.strip()
                    if not line or line.startswith('#'):
                        continue
                    paths.append(line)
        except OSError as e:
            raise RegistryError('Could not read shell list {0}: {1}'.format(path, e))
        return(cls(paths))

    def __contains__(self, path):
        return(path in self.paths)

    def __len__(self):
        return(len(self.paths))


class SessionRecord(object):
    def __init__(self, key, user, started, host = None):
        self.key = key
        self.user = user
        self.started = started
        self.host = (host if host else None)

    def __repr__(self):
        return('SessionRecord({0!r}, user = {1!r}, started = {2!r}, host = {3!r})'.format(self.key,
                                                                                          self.user,
                                                                                          self.started,
                                                                                          self.host))


class SessionRegistry(object):
    def __init__(self):
        # Terminal lines and X11 displays are kept apart; ":0" is never a tty.
        self.ttys = {}
        self.displays = {}

    def add(self, terminal, user, started, host = None):
        if not terminal:
            return(None)
        display = stripDisplay(terminal)
        if display:
            table, key = self.displays, display
        else:
            table, key = self.ttys, terminal
        if key in table:
            # First one wins.
            return(None)
        table[key] = SessionRecord(key, user, started, host = host)
        return(table[key])

    @classmethod
    def load(cls):
        reg = cls()
        for u in psutil.users():
            reg.add(u.terminal, u.name, u.started, host = u.host)
        logger.debug('Found {0} tty and {1} display sessions'.format(len(reg.ttys), len(reg.displays)))
        return(reg)

    def resolve(self, short, environ = None):
        # Returns (record, from_display).
        if short in self.ttys:
            return(self.ttys[short], False)
        display = stripDisplay((environ or {}).get('DISPLAY'))
        if display and display in self.displays:
            return(self.displays[display], True)
        return(None, False)


def groupsOf(user):
    groups = set()
    try:
        pw = pwd.getpwnam(user)
    except KeyError:
        return(groups)
    try:
        groups.add(grp.getgrgid(pw.pw_gid).gr_name)
    except KeyError:
        pass
    for g in grp.getgrall():
        if user in g.gr_mem:
            groups.add(g.gr_name)
    return(groups)
