from __future__ import annotations

import asyncio

from pulsartui.app import TUIApp
from pulsartui.models.navigation_state import LevelKind
from pulsartui.models.session_mode import Message, MessageKind


TWIN = "non-persistent://t1/ns1/orders"


class FakeClient:
    def list_tenants(self):
        return ["t1"]

    def list_namespaces(self, tenant):
        return ["ns1"]

    def list_topics(self, tenant, namespace):
        return [
            {"name": "orders", "fqn": "persistent://t1/ns1/orders", "persistent": True},
            {"name": TWIN, "fqn": TWIN, "persistent": False},
        ]

    def list_subscriptions(self, tenant, namespace, topic):
        return [{"name": "s1", "type": "Shared", "backlog": 0, "consumer_count": 1}]


async def settle(app, pilot):
    await app.workers.wait_for_complete()
    await pilot.pause()


def test_topics_with_the_same_short_name_render():
    async def scenario():
        app = TUIApp(FakeClient())
        async with app.run_test() as pilot:
            await settle(app, pilot)
            for _ in range(2):
                await pilot.press("enter")
                await settle(app, pilot)

            frame = app.session.snapshot().current
            assert frame.level.kind is LevelKind.TOPICS
            assert [item.name for item in frame.items] == ["orders", TWIN]
            assert app.browser.data_table.row_count == 2
            assert not isinstance(app.session.mode, Message)

    asyncio.run(scenario())


def test_handler_failure_becomes_error_message():
    async def scenario():
        app = TUIApp(FakeClient())
        async with app.run_test() as pilot:
            await settle(app, pilot)

            def broken(_event):
                raise RuntimeError("boom")

            app.session.handle_key = broken
            await pilot.press("j")
            await pilot.pause()

            mode = app.session.mode
            assert isinstance(mode, Message)
            assert mode.kind is MessageKind.ERROR
            assert "boom" in mode.text
            assert app.browser.mode_panel.display

    asyncio.run(scenario())
