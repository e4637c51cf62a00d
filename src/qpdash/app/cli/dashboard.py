"""
qpdash command line entry point.
"""
from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from twisted.internet import defer, task
from twisted.internet.defer import inlineCallbacks

from qpdash.app.bootstrap import DashboardApp, bootstrap
from qpdash.config.constants import LinkPhase


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qpdash", description="Trading dashboard client")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="store the dashboard session token")
    login.add_argument("--token", required=True)
    sub.add_parser("logout", help="clear the stored session token")
    sub.add_parser("status", help="show plan, broker and engine state")
    sub.add_parser("link", help="link the Angel broker account")
    sub.add_parser("toggle-engine", help="turn the trading engine on or off")

    margin = sub.add_parser("set-margin", help="set the allowed Angel margin percentage")
    margin.add_argument("percent", type=float)
    client_id = sub.add_parser("set-client-id", help="set the Angel client id")
    client_id.add_argument("client_id")
    return parser


@inlineCallbacks
def run_status(app: DashboardApp):
    yield app.refresh_dashboard()
    return 0 if app.store.current() is not None else 1


@inlineCallbacks
def run_toggle(app: DashboardApp):
    yield app.store.refresh_profile()
    yield app.engine.toggle()
    return 0


@inlineCallbacks
def run_set_margin(app: DashboardApp, percent: float):
    ok = yield app.settings.update_margin(percent)
    return 0 if ok else 1


@inlineCallbacks
def run_set_client_id(app: DashboardApp, client_id: str):
    ok = yield app.settings.update_client_id(client_id)
    return 0 if ok else 1


def wait_for_link_outcome(app: DashboardApp) -> defer.Deferred:
    """
    Resolves to LINKED once the acknowledgment has shown its confirmation,
    or to FAILED / EXPIRED when the attempt ends without a link.
    """
    done: defer.Deferred = defer.Deferred()

    def _on_confirmed(_message: str) -> None:
        if not done.called:
            done.callback(LinkPhase.LINKED)

    def _on_phase(phase: LinkPhase, _message: Optional[str]) -> None:
        if phase in (LinkPhase.FAILED, LinkPhase.EXPIRED) and not done.called:
            done.callback(phase)

    app.gate.subscribe(_on_confirmed)
    app.context.subscribe(_on_phase)
    return done


@inlineCallbacks
def run_link(app: DashboardApp):
    if app.callback_server is not None:
        app.callback_server.start()
    try:
        yield app.refresh_dashboard()
        if app.linking.phase is LinkPhase.LINKED:
            return 0
        finished = wait_for_link_outcome(app)
        started = yield app.linking.start_linking()
        if not started:
            return 1
        phase = yield finished
        return 0 if phase is LinkPhase.LINKED else 1
    finally:
        app.stop()


@inlineCallbacks
def run_command(app: DashboardApp, args: argparse.Namespace):
    """
    Shared startup for every signed-in command: finish an interrupted
    linking attempt first, then run the command itself.
    """
    if not app.session.is_authenticated:
        app.view.redirect_to_login()
        return 1
    yield app.linking.resume_pending()
    if args.command == "status":
        code = yield run_status(app)
    elif args.command == "toggle-engine":
        code = yield run_toggle(app)
    elif args.command == "set-margin":
        code = yield run_set_margin(app, args.percent)
    elif args.command == "set-client-id":
        code = yield run_set_client_id(app, args.client_id)
    else:
        code = yield run_link(app)
    return code


def _react_main(reactor, args: argparse.Namespace):
    app = bootstrap(reactor=reactor)
    return run_command(app, args).addCallback(_exit_on_failure)


def _exit_on_failure(code: int) -> None:
    if code:
        raise SystemExit(code)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command in ("login", "logout"):
        app = bootstrap()
        if args.command == "login":
            app.session.save(args.token)
        else:
            app.session.clear()
        return 0
    task.react(_react_main, (args,))
    return 0


if __name__ == "__main__":
    sys.exit(main())
