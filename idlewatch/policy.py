#!/usr/bin/env python3

# Ordinary users get warned at 10 minutes and hung up on at 30, every run.
# Admins are never killed. In cron mode they get one reminder per threshold
# crossed (15 minutes, 30 minutes, then every hour); otherwise every run past
# 15 minutes warns.

from idlewatch import config
from idlewatch import registries

ADMIN = 'admin'
ORDINARY = 'ordinary'


def clamp(seconds):
    return(max(0, int(seconds)))


def within(idle, threshold, elapsed):
    # True if the threshold has been reached and the last run happened before it was.
    return(idle >= threshold and elapsed > (idle - threshold))


def classify(user, cfg = None, groups = registries.groupsOf):
    if cfg and cfg.all_ordinary:
        return(ORDINARY)
    # No session means we can't tell who it is; be lenient.
    if user is None or user == 'root':
        return(ADMIN)
    if config.admin_group in groups(user):
        return(ADMIN)
    return(ORDINARY)


class Decision(object):
    def __init__(self, idle, classification):
        self.idle = idle
        self.classification = classification
        self.send_warning = False
        self.might_kill = False
        self.do_kill = False
        self.reason = None

    def __bool__(self):
        return(self.send_warning or self.do_kill)

    def __repr__(self):
        return(('Decision(idle = {0}, classification = {1}, send_warning = {2}, '
                'might_kill = {3}, do_kill = {4}, reason = {5})').format(self.idle,
                                                                         self.classification,
                                                                         self.send_warning,
                                                                         self.might_kill,
                                                                         self.do_kill,
                                                                         self.reason))


def decide(idle, classification, cfg = None, cron = False, elapsed = 0):
    if not cfg:
        cfg = config.PolicyConfig()
    idle = clamp(idle)
    elapsed = clamp(elapsed)
    d = Decision(idle, classification)
    if classification == ORDINARY:
        if idle > cfg.warn_after:
            d.send_warning = True
            d.might_kill = True
            d.reason = 'idle'
        if idle > cfg.kill_after:
            d.do_kill = True
            d.reason = 'kill'
        return(d)
    if not cron:
        if idle >= cfg.admin_warn:
            d.send_warning = True
            d.reason = '15min'
        return(d)
    if within(idle, cfg.admin_warn, elapsed):
        d.send_warning = True
        d.reason = '15min'
    elif within(idle, cfg.admin_second, elapsed):
        d.send_warning = True
        d.reason = '30min'
    elif idle >= cfg.admin_repeat:
        # An exact multiple of an hour fires whenever elapsed > 0.
        if within(idle % cfg.admin_repeat, 0, elapsed):
            d.send_warning = True
            d.reason = 'hourly'
    return(d)
