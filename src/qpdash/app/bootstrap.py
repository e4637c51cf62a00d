"""
Application bootstrap: set up logging and wire the dashboard components.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from twisted.internet import task
from twisted.internet.defer import inlineCallbacks

from qpdash.application.broker_settings import BrokerSettingsService
from qpdash.application.engine_gate import EngineGate
from qpdash.application.linking import (
    AngelLinkService,
    CompletionResolver,
    LinkAcknowledgmentGate,
    LinkingContext,
    PendingTokenCarryOver,
    PollWatcher,
)
from qpdash.application.linking.resolver import LINKED_MESSAGE
from qpdash.application.protocols import DashboardView, PopupLauncher
from qpdash.application.state import AccountStateStore
from qpdash.config.logging import setup_logging
from qpdash.config.runtime import AppConfig, load_config
from qpdash.infrastructure.api import RemoteClient, SessionStore
from qpdash.infrastructure.broker.angel import BrowserPopup, CallbackServer
from qpdash.infrastructure.storage.kv_store import KeyValueStore
from qpdash.ui.console_view import ConsoleDashboardView


@dataclass
class DashboardApp:
    config: AppConfig
    reactor: object
    view: DashboardView
    storage: KeyValueStore
    session: SessionStore
    client: RemoteClient
    store: AccountStateStore
    engine: EngineGate
    settings: BrokerSettingsService
    context: LinkingContext
    watcher: PollWatcher
    gate: LinkAcknowledgmentGate
    resolver: CompletionResolver
    carry_over: PendingTokenCarryOver
    linking: AngelLinkService
    callback_server: Optional[CallbackServer] = None
    _refresh_loop: Optional[task.LoopingCall] = field(default=None, repr=False)

    @inlineCallbacks
    def refresh_dashboard(self):
        yield self.store.refresh_plan()
        yield self.store.refresh_profile()

    def start_auto_refresh(self) -> None:
        if self.config.refresh_interval <= 0 or self._refresh_loop is not None:
            return
        loop = task.LoopingCall(self.refresh_dashboard)
        loop.clock = self.reactor
        self._refresh_loop = loop
        loop.start(self.config.refresh_interval, now=False)

    def stop(self) -> None:
        self.watcher.stop()
        loop, self._refresh_loop = self._refresh_loop, None
        if loop is not None and loop.running:
            loop.stop()
        if self.callback_server is not None:
            self.callback_server.stop()


def bootstrap(
    view: Optional[DashboardView] = None,
    config: Optional[AppConfig] = None,
    *,
    reactor=None,
    agent=None,
    popup: Optional[PopupLauncher] = None,
    storage: Optional[KeyValueStore] = None,
    configure_logging: bool = True,
) -> DashboardApp:
    """
    Build the dashboard object graph.

    Args:
        view: presentation adapter; defaults to the console view
        config: runtime config; defaults to `load_config()`
        reactor: Twisted reactor / clock; defaults to the global reactor
    """
    config = config or load_config()
    if configure_logging:
        setup_logging(level_name=config.log_level, log_file=config.log_file)
    if reactor is None:
        from twisted.internet import reactor as default_reactor
        reactor = default_reactor
    view = view or ConsoleDashboardView()
    storage = (storage or KeyValueStore(config.state_file)).load()

    session = SessionStore(storage)
    client = RemoteClient(
        config.api_base_url,
        session,
        reactor=reactor,
        agent=agent,
        timeout=config.request_timeout,
    )
    client.set_callbacks(on_session_expired=view.redirect_to_login)

    store = AccountStateStore(client, view)
    engine = EngineGate(client, store, view)
    engine.set_callbacks(on_error=view.show_alert)
    store.subscribe(engine.on_snapshot)
    settings = BrokerSettingsService(client, store)
    settings.set_callbacks(on_error=view.show_alert)

    context = LinkingContext()
    watcher = PollWatcher(
        context,
        store,
        clock=reactor,
        interval=config.link_poll_interval,
        deadline_seconds=config.link_deadline,
    )
    gate = LinkAcknowledgmentGate(
        context,
        store,
        view,
        clock=reactor,
        stop_polling=watcher.stop,
        settle_delay=config.link_settle_delay,
    )
    watcher.set_callbacks(
        on_broker_linked=lambda attempt_id: gate.acknowledge(LINKED_MESSAGE, attempt_id),
    )
    carry_over = PendingTokenCarryOver(storage)
    resolver = CompletionResolver(
        client,
        store,
        gate,
        context,
        carry_over,
        is_polling=lambda: watcher.running,
    )
    resolver.set_callbacks(on_error=view.show_alert)
    linking = AngelLinkService(
        client,
        context,
        watcher,
        resolver,
        carry_over,
        popup or BrowserPopup(),
        callback_uri=config.callback_uri if config.callback_server_enabled else None,
    )
    linking.set_callbacks(on_phase_changed=view.update_link_phase, on_error=view.show_alert)

    callback_server = None
    if config.callback_server_enabled:
        callback_server = CallbackServer(
            config.callback_uri,
            linking.handle_message,
            accepts=linking.accepts_message,
            reactor=reactor,
        )

    return DashboardApp(
        config=config,
        reactor=reactor,
        view=view,
        storage=storage,
        session=session,
        client=client,
        store=store,
        engine=engine,
        settings=settings,
        context=context,
        watcher=watcher,
        gate=gate,
        resolver=resolver,
        carry_over=carry_over,
        linking=linking,
        callback_server=callback_server,
    )


__all__ = ["DashboardApp", "bootstrap"]
