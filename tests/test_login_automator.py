"""Tests for login form automation."""

import json
import logging

import pytest

from webshell.errors import ScriptInjectionError
from webshell.login_automator import RETRY_DELAY_SECONDS, LoginAutomator
from webshell.navigation_gate import GateState, NavigationGate
from webshell.settings import Credential, LaunchConfig

LOGIN = "https://app.example.com/login"
APP = "https://app.example.com/"


class FakeRenderer:
    def __init__(self, fail=False):
        self.scripts = []
        self.callbacks = []
        self.fail = fail

    def execute_script(self, js, callback=None):
        if self.fail:
            raise ScriptInjectionError("page is gone")
        self.scripts.append(js)
        self.callbacks.append(callback)


class FakeScheduler:
    def __init__(self):
        self.pending = []

    def __call__(self, delay_ms, fn):
        self.pending.append((delay_ms, fn))

    def fire_all(self):
        pending, self.pending = self.pending, []
        for _, fn in pending:
            fn()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def automator(renderer, scheduler):
    return LoginAutomator(renderer.execute_script, Credential("alice", 'se"cret'), schedule=scheduler)


def test_injects_on_login_page(automator, renderer, scheduler):
    assert automator.maybe_login(LOGIN) is True
    assert automator.attempted
    assert len(renderer.scripts) == 1
    assert scheduler.pending[0][0] == RETRY_DELAY_SECONDS * 1000


def test_skips_non_login_page(automator, renderer):
    assert automator.maybe_login(APP) is False
    assert renderer.scripts == []
    assert not automator.attempted


def test_skips_without_credentials(renderer, scheduler):
    automator = LoginAutomator(renderer.execute_script, None, schedule=scheduler)
    assert automator.maybe_login(LOGIN) is False
    assert renderer.scripts == []
    assert scheduler.pending == []


def test_no_double_injection_while_attempted(automator, renderer):
    automator.maybe_login(LOGIN)
    assert automator.maybe_login(LOGIN) is False
    assert automator.maybe_login(LOGIN) is False
    assert len(renderer.scripts) == 1


def test_reset_allows_exactly_one_more_attempt(automator, renderer, scheduler):
    automator.maybe_login(LOGIN)
    scheduler.fire_all()
    assert not automator.attempted
    assert automator.maybe_login(LOGIN) is True
    assert automator.maybe_login(LOGIN) is False
    assert len(renderer.scripts) == 2


def test_injection_failure_is_swallowed_and_reset_still_scheduled(scheduler):
    renderer = FakeRenderer(fail=True)
    automator = LoginAutomator(renderer.execute_script, Credential("a", "b"), schedule=scheduler)
    assert automator.maybe_login(LOGIN) is False
    assert automator.attempted
    assert not automator.pending
    assert len(scheduler.pending) == 1
    scheduler.fire_all()
    assert not automator.attempted


def test_script_embeds_json_encoded_credentials(automator, renderer):
    automator.maybe_login(LOGIN)
    js = renderer.scripts[0]
    user, password = json.dumps("alice"), json.dumps('se"cret')
    assert f"const USER = {user};" in js
    assert f"const PASS = {password};" in js


def test_submitted_result_keeps_attempt_pending(automator, renderer):
    stalls = []
    automator.on_stalled = lambda: stalls.append(1)
    automator.maybe_login(LOGIN)
    renderer.callbacks[0]("submitted")
    assert automator.pending
    assert stalls == []


@pytest.mark.parametrize("result", [None, "no-fields", "no-submit"])
def test_unsuccessful_result_stalls_with_warning(automator, renderer, result, caplog):
    stalls = []
    automator.on_stalled = lambda: stalls.append(1)
    automator.maybe_login(LOGIN)
    with caplog.at_level(logging.WARNING, logger="webshell.login_automator"):
        renderer.callbacks[0](result)
    assert not automator.pending
    assert stalls == [1]
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_reset_stalls_a_pending_attempt_once(automator, scheduler):
    stalls = []
    automator.on_stalled = lambda: stalls.append(1)
    automator.maybe_login(LOGIN)
    scheduler.fire_all()
    assert stalls == [1]
    assert not automator.pending


def test_enabled_follows_credential(renderer, scheduler):
    assert LoginAutomator(renderer.execute_script, Credential("a", "b"), schedule=scheduler).enabled
    assert not LoginAutomator(renderer.execute_script, None, schedule=scheduler).enabled


# ---------- together with the gate ----------

class Surface:
    def __init__(self):
        self.content_visible = False

    def show_content(self):
        self.content_visible = True

    def show_overlay(self, text):
        self.content_visible = False


def wire(credential, renderer, scheduler):
    surface = Surface()
    automator = LoginAutomator(renderer.execute_script, credential, schedule=scheduler)
    gate = NavigationGate(surface, automator)
    automator.on_stalled = gate.on_login_stalled
    return gate, surface


def load(gate, url):
    gate.on_navigation_starting(url)
    gate.on_navigation_completed(url, True)


def test_default_config_shows_login_form_for_manual_login(renderer, scheduler):
    gate, surface = wire(LaunchConfig().auto_login, renderer, scheduler)
    for _ in range(5):
        load(gate, LOGIN)
        assert gate.state is GateState.READY
        assert surface.content_visible
    assert renderer.scripts == []


def test_wrong_password_reveals_form_after_retry_delay(renderer, scheduler):
    gate, surface = wire(Credential("alice", "wrong"), renderer, scheduler)
    load(gate, LOGIN)
    assert gate.state is GateState.AUTHENTICATING
    renderer.callbacks[0]("submitted")
    # server answered with the same form plus an error
    load(gate, LOGIN + "?error=1")
    assert gate.state is GateState.AUTHENTICATING
    scheduler.fire_all()
    assert gate.state is GateState.READY
    assert surface.content_visible


def test_one_more_attempt_then_form_is_revealed_again(renderer, scheduler):
    gate, surface = wire(Credential("alice", "wrong"), renderer, scheduler)
    load(gate, LOGIN)
    scheduler.fire_all()
    assert surface.content_visible

    load(gate, LOGIN)
    assert gate.state is GateState.AUTHENTICATING
    assert len(renderer.scripts) == 2
    renderer.callbacks[1]("no-fields")
    assert gate.state is GateState.READY
    assert surface.content_visible


def test_failed_injection_reveals_form_immediately(scheduler):
    renderer = FakeRenderer(fail=True)
    gate, surface = wire(Credential("alice", "pw"), renderer, scheduler)
    load(gate, LOGIN)
    assert gate.state is GateState.READY
    assert surface.content_visible


def test_successful_login_reaches_app(renderer, scheduler):
    gate, surface = wire(Credential("alice", "pw"), renderer, scheduler)
    load(gate, LOGIN)
    renderer.callbacks[0]("submitted")
    load(gate, APP)
    assert gate.state is GateState.READY
    scheduler.fire_all()
    assert gate.state is GateState.READY
    assert surface.content_visible
