import io

import psutil
import pytest

from idlewatch import notify
from idlewatch import policy
from idlewatch.registries import SessionRecord
from idlewatch.snapshot import ProcessRecord, Resolved


@pytest.fixture
def resolved():
    return Resolved(ProcessRecord(4242, 4000, 0), '/dev/pts/3', '/bin/bash', {'TERM': 'xterm'})


@pytest.mark.parametrize('seconds,expected', [
    (0, '0s'),
    (-10, '0s'),
    (59, '59s'),
    (61, '1m 01s'),
    (3661, '1h 01m 01s'),
    (90061, '1d 1h 01m 01s'),
])
def test_human_duration(seconds, expected):
    assert notify.humanDuration(seconds) == expected


def test_report_ordinary(resolved):
    d = policy.decide(700, policy.ORDINARY)
    session = SessionRecord('pts/3', 'bob', 1000.0, host = '10.0.0.5')
    text = notify.Report(resolved, d, session = session, idle_since = 2000.0, hostname = 'box').format()
    lines = text.splitlines()
    assert lines[0] == 'Idle shell on box: /bin/bash (pid 4242, remote from 10.0.0.5)'
    assert 'user:       bob' in text
    assert 'idle for:   11m 40s ** TO BE KILLED **' in text
    assert 'idle since:' in text
    assert 'logged in:' in text
    assert lines[-1].endswith('terminal:   pts/3')


def test_report_admin_without_session(resolved):
    d = policy.decide(1000, policy.ADMIN)
    text = notify.Report(resolved, d, hostname = 'box').format()
    assert 'no login session' in text
    assert '(unknown)' in text
    assert 'TO BE KILLED' not in text
    assert 'logged in:' not in text
    assert 'idle since:' not in text


def test_report_display(resolved):
    d = policy.decide(1000, policy.ADMIN)
    session = SessionRecord(':0', 'alice', 1000.0, host = ':0')
    text = str(notify.Report(resolved, d, session = session, from_display = True, hostname = 'box'))
    assert 'X11 display :0' in text


def test_report_local(resolved):
    d = policy.decide(1000, policy.ADMIN)
    session = SessionRecord('pts/3', 'alice', 1000.0, host = '')
    assert notify.Report(resolved, d, session = session, hostname = 'box').origin == 'local'


def test_warn(resolved):
    out = io.StringIO()
    e = notify.Enforcer(out = out)
    e.warn(notify.Report(resolved, policy.decide(700, policy.ORDINARY), hostname = 'box'))
    assert 'pid 4242' in out.getvalue()
    assert e.warned == 1


def test_warn_to_terminal(resolved, tmp_path):
    fake_tty = tmp_path / 'pts3'
    resolved.tty = str(fake_tty)
    e = notify.Enforcer(tty_notify = True, out = io.StringIO())
    e.warn(notify.Report(resolved, policy.decide(700, policy.ORDINARY), hostname = 'box'))
    assert 'Idle shell on box' in fake_tty.read_text()


def test_warn_to_missing_terminal_is_not_fatal(resolved, tmp_path):
    resolved.tty = str(tmp_path / 'gone' / 'pts3')
    e = notify.Enforcer(tty_notify = True, out = io.StringIO())
    e.warn(notify.Report(resolved, policy.decide(700, policy.ORDINARY), hostname = 'box'))
    assert e.warned == 1


def test_kill_dryrun(monkeypatch):
    monkeypatch.setattr(notify.psutil, 'Process', lambda pid: pytest.fail('should not signal'))
    out = io.StringIO()
    e = notify.Enforcer(dryrun = True, out = out)
    assert e.kill(4242) is True
    assert '(dry run)' in out.getvalue()
    assert e.killed == 0


def test_kill(monkeypatch):
    sent = []

    class Proc(object):
        def __init__(self, pid):
            self.pid = pid

        def send_signal(self, sig):
            sent.append((self.pid, sig))

    monkeypatch.setattr(notify.psutil, 'Process', Proc)
    e = notify.Enforcer(out = io.StringIO())
    assert e.kill(4242) is True
    assert sent == [(4242, notify.signal.SIGHUP)]
    assert e.killed == 1


def test_kill_gone(monkeypatch):
    def gone(pid):
        raise psutil.NoSuchProcess(pid)
    monkeypatch.setattr(notify.psutil, 'Process', gone)
    out = io.StringIO()
    e = notify.Enforcer(out = out)
    assert e.kill(4242) is False
    assert e.failed == 1
    assert 'Could not send SIGHUP to pid 4242' in out.getvalue()
