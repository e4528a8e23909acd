import os
import sys

import psutil
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from idlewatch import registries  # noqa: E402

# Lifted from a stock Linux box.
DRIVERS = """/dev/tty             /dev/tty        5       0 system:/dev/tty
/dev/console         /dev/console    5       1 system:console
/dev/ptmx            /dev/ptmx       5       2 system
/dev/vc/0            /dev/vc/0       4       0 system:vtmaster
serial               /dev/ttyS       4 64-95 serial
pty_slave            /dev/pts      136 0-1048575 pty:slave
pty_master           /dev/ptm      128 0-1048575 pty:master
unknown              /dev/tty        4 1-63 console
"""

SHELLS = """# /etc/shells: valid login shells
/bin/sh
/bin/bash
/usr/bin/bash

/usr/bin/zsh
"""


class FakeProc(object):
    def __init__(self, pid, ppid, uid = 0, exe = None, fds = (), environ = None):
        self.pid = pid
        self.ppid = ppid
        self.uid = uid
        self.exe = exe
        self.fds = fds
        self.environ = environ


class FakeProcInfo(object):
    # In-memory stand-in for the real process table. None means "permission denied".
    def __init__(self, procs = (), mtimes = None):
        self.procs = {p.pid: p for p in procs}
        self.mtimes = dict(mtimes or {})
        self.calls = []

    def processes(self):
        for pid in sorted(self.procs):
            p = self.procs[pid]
            yield (p.pid, p.ppid, p.uid)

    def _get(self, pid, attr):
        self.calls.append((attr, pid))
        p = self.procs.get(pid)
        if p is None:
            raise psutil.NoSuchProcess(pid)
        v = getattr(p, attr)
        if v is None:
            raise psutil.AccessDenied(pid)
        return v

    def fdTargets(self, pid):
        return list(self._get(pid, 'fds'))

    def exe(self, pid):
        return self._get(pid, 'exe')

    def environ(self, pid):
        return dict(self._get(pid, 'environ'))

    def mtime(self, path):
        if path not in self.mtimes:
            raise FileNotFoundError(path)
        return self.mtimes[path]


def shell(pid, ppid, tty, uid = 0, exe = '/bin/bash', environ = None):
    if environ is None:
        environ = {'HOME': '/root', 'TERM': 'xterm'}
    return FakeProc(pid, ppid, uid = uid, exe = exe, fds = ['/dev/null', tty, tty], environ = environ)


@pytest.fixture
def drivers_file(tmp_path):
    p = tmp_path / 'drivers'
    p.write_text(DRIVERS)
    return str(p)


@pytest.fixture
def shells_file(tmp_path):
    p = tmp_path / 'shells'
    p.write_text(SHELLS)
    return str(p)


@pytest.fixture
def drivers(drivers_file):
    return registries.TerminalDrivers.load(drivers_file)


@pytest.fixture
def shells(shells_file):
    return registries.Shells.load(shells_file)


@pytest.fixture
def init():
    return FakeProc(1, 0, exe = '/usr/lib/systemd/systemd', fds = ['/dev/null'], environ = {'PATH': '/bin'})
