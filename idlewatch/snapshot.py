#!/usr/bin/env python3

import logging
import os
##
import psutil
##
from idlewatch import config

logger = logging.getLogger('idlewatch')

_missing = object()


class ProcInfo(object):
    # Everything we ask the OS about a process goes through here.
    # Anything can raise psutil.Error or OSError; the process may be gone already.
    def processes(self):
        for p in psutil.process_iter(['pid', 'ppid', 'uids']):
            uids = p.info['uids']
            if uids is None:
                continue
            yield(p.info['pid'], p.info['ppid'], uids.real)

    def fdTargets(self, pid):
        fddir = '/proc/{0}/fd'.format(pid)
        targets = []
        for fd in sorted(os.listdir(fddir), key = int):
            try:
                targets.append(os.readlink(os.path.join(fddir, fd)))
            except OSError:
                # Closed in the meantime.
                continue
        return(targets)

    def exe(self, pid):
        return(psutil.Process(pid).exe())

    def environ(self, pid):
        return(psutil.Process(pid).environ())

    def mtime(self, path):
        return(os.stat(path).st_mtime)


class ProcessRecord(object):
    __slots__ = ('pid', 'ppid', 'uid')

    def __init__(self, pid, ppid, uid):
        self.pid = pid
        self.ppid = ppid
        self.uid = uid

    def __repr__(self):
        return('ProcessRecord(pid = {0}, ppid = {1}, uid = {2})'.format(self.pid, self.ppid, self.uid))


class Resolved(object):
    def __init__(self, record, tty, exe, environ):
        self.record = record
        self.pid = record.pid
        self.tty = tty
        self.short = shortName(tty)
        self.exe = exe
        self.environ = environ


def shortName(tty):
    # "/dev/pts/3" -> "pts/3", which is what utmp calls it.
    if tty.startswith('/dev/'):
        return(tty[5:])
    return(os.path.basename(tty))


def isMultiplexer(exe):
    if not exe:
        return(False)
    # Some distros install e.g. /usr/bin/screen-4.9.1 and symlink /usr/bin/screen to it.
    name = os.path.basename(exe).split('-', 1)[0]
    return(name in config.multiplexers)


class Snapshot(object):
    def __init__(self, procinfo, drivers):
        self.procinfo = procinfo
        self.drivers = drivers
        self.procs = {}
        self._cache = {'tty': {}, 'exe': {}, 'env': {}}
        self.capture()

    def capture(self):
        for pid, ppid, uid in self.procinfo.processes():
            self.procs[pid] = ProcessRecord(pid, ppid, uid)
        logger.debug('Captured {0} processes'.format(len(self.procs)))
        return()

    def __iter__(self):
        for pid in sorted(self.procs):
            yield(self.procs[pid])

    def __len__(self):
        return(len(self.procs))

    def _lookup(self, kind, pid, func):
        cache = self._cache[kind]
        v = cache.get(pid, _missing)
        if v is _missing:
            try:
                v = func(pid)
            except (psutil.Error, OSError) as e:
                logger.debug('Could not read {0} of pid {1}: {2}'.format(kind, pid, e))
                v = None
            cache[pid] = v
        return(v)

    def terminal(self, pid):
        def _find(_pid):
            for target in self.procinfo.fdTargets(_pid):
                if self.drivers.match(target):
                    return(target)
            return(None)
        return(self._lookup('tty', pid, _find))

    def exe(self, pid):
        return(self._lookup('exe', pid, self.procinfo.exe) or None)

    def environ(self, pid):
        return(self._lookup('env', pid, self.procinfo.environ) or None)

    def resolve(self, pid, shells):
        # Returns a Resolved, or None if this isn't an interactive shell on a terminal.
        record = self.procs.get(pid)
        if not record:
            return(None)
        exe = self.exe(pid)
        if not exe or exe not in shells:
            return(None)
        tty = self.terminal(pid)
        if not tty:
            logger.debug('pid {0} ({1}) has no terminal'.format(pid, exe))
            return(None)
        environ = self.environ(pid)
        if not environ:
            logger.debug('pid {0} ({1}) has no readable environment'.format(pid, exe))
            return(None)
        return(Resolved(record, tty, exe, environ))

    def inDetachedMux(self, pid):
        # The first multiplexer up the tree decides; we don't look past it.
        record = self.procs.get(pid)
        if not record:
            return(False)
        seen = set([pid])
        ppid = record.ppid
        while ppid not in (0, 1) and ppid not in seen:
            seen.add(ppid)
            parent = self.procs.get(ppid)
            if not parent:
                # Exited since the snapshot; nothing more to find.
                return(False)
            if isMultiplexer(self.exe(ppid)):
                if self.terminal(ppid):
                    return(False)
                logger.debug('pid {0} lives in detached multiplexer {1}'.format(pid, ppid))
                return(True)
            ppid = parent.ppid
        return(False)
