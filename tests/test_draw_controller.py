import asyncio

from buffersearch.config.settings import get_settings
from buffersearch.core.errors import InvalidParameterError, ParseError, TransportError
from buffersearch.core.geo import Point
from buffersearch.domain.models import ActivationConfig, Feature
from buffersearch.interaction.controller import DrawInteractionController, DrawState
from buffersearch.interaction.memory import InMemoryMap, RecordingNotifier
from buffersearch.query.outcome import Empty, Failure, Success, outcome_from_features
from buffersearch.state.store import FeatureStore


def _features(n):
    return [
        Feature(geometry={"type": "Point", "coordinates": [10.0, 20.0]}, properties={"id": f"f{i}"})
        for i in range(n)
    ]


class StubQueryClient:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    async def query(self, layer, area):
        self.calls.append((layer, area))
        return self.outcome


class GatedQueryClient:
    """Resolves each call only when the test releases its gate."""

    def __init__(self):
        self.calls = []

    async def query(self, layer, area):
        gate = asyncio.Event()
        slot = {"gate": gate, "outcome": None, "area": area}
        self.calls.append(slot)
        await gate.wait()
        return slot["outcome"]

    def resolve(self, index, outcome):
        self.calls[index]["outcome"] = outcome
        self.calls[index]["gate"].set()


class RaisingQueryClient:
    async def query(self, layer, area):
        raise RuntimeError("boom")


def _controller(query_client, *, distance=1000, unit="meters"):
    config = ActivationConfig.from_settings(get_settings(), distance=distance, unit=unit)
    map_view = InMemoryMap()
    store = FeatureStore()
    notifier = RecordingNotifier()
    controller = DrawInteractionController(map_view, store, query_client, notifier, config)
    return controller, map_view, store, notifier


def test_arm_acquires_single_tool_and_overlay_and_rearm_is_noop():
    controller, map_view, _, _ = _controller(StubQueryClient(Empty()))

    controller.arm()
    controller.arm()

    assert controller.state == DrawState.DRAWING
    assert map_view.tools_created == 1
    assert len(map_view.interactions) == 1
    assert len(map_view.layers) == 1
    assert map_view.draw_tool.geometry_type == "point"
    assert map_view.draw_tool.has_listener


def test_draw_three_features_updates_store():
    client = StubQueryClient(outcome_from_features(_features(3)))
    controller, map_view, store, notifier = _controller(client)

    async def scenario():
        controller.arm()
        map_view.draw_tool.finish(Point(x=10, y=20))
        await controller.wait_idle()

    asyncio.run(scenario())

    assert len(store.state.features) == 3
    assert store.state.loading is False
    assert store.state.error is None
    assert controller.state == DrawState.DRAWING
    assert map_view.layers[0].styles() == ["point", "zone"]
    assert client.calls[0][1].distance_m == 1000
    assert notifier.messages == []


def test_empty_result_keeps_overlay_and_notifies_info():
    controller, map_view, store, notifier = _controller(StubQueryClient(Empty()))

    async def scenario():
        controller.arm()
        await controller.handle_point(Point(x=10, y=20))

    asyncio.run(scenario())

    assert store.state.features == ()
    assert store.state.error is None
    assert store.state.loading is False
    assert map_view.layers[0].styles() == ["point", "zone"]
    assert [s for _, s in notifier.messages] == ["info"]


def test_transport_failure_sets_error_and_clears_overlay():
    failure = Failure(TransportError("Backend unreachable"))
    controller, map_view, store, notifier = _controller(StubQueryClient(failure))

    async def scenario():
        controller.arm()
        await controller.handle_point(Point(x=10, y=20))

    asyncio.run(scenario())

    assert isinstance(store.state.error, TransportError)
    assert store.state.features == ()
    assert map_view.layers[0].items == []
    assert [s for _, s in notifier.messages] == ["error"]


def test_parse_failure_settles_as_error():
    controller, _, store, _ = _controller(StubQueryClient(Failure(ParseError("bad payload"))))

    async def scenario():
        controller.arm()
        await controller.handle_point(Point(x=10, y=20))

    asyncio.run(scenario())

    assert isinstance(store.state.error, ParseError)


def test_invalid_distance_skips_query():
    client = StubQueryClient(Empty())
    controller, map_view, store, notifier = _controller(client, distance=0)

    async def scenario():
        controller.arm()
        await controller.handle_point(Point(x=10, y=20))

    asyncio.run(scenario())

    assert client.calls == []
    assert isinstance(store.state.error, InvalidParameterError)
    assert store.state.loading is False
    assert map_view.layers[0].items == []
    assert notifier.messages[0][1] == "error"
    assert isinstance(controller.last_outcome, Failure)


def test_unexpected_query_exception_never_escapes():
    controller, _, store, _ = _controller(RaisingQueryClient())

    async def scenario():
        controller.arm()
        await controller.handle_point(Point(x=10, y=20))

    asyncio.run(scenario())

    assert isinstance(store.state.error, TransportError)


def test_last_draw_wins_when_earlier_response_arrives_late():
    client = GatedQueryClient()
    controller, map_view, store, _ = _controller(client)

    async def scenario():
        controller.arm()
        map_view.draw_tool.finish(Point(x=10, y=20))
        map_view.draw_tool.finish(Point(x=11, y=21))
        while len(client.calls) < 2:
            await asyncio.sleep(0)

        client.resolve(1, Success(tuple(_features(1))))
        await asyncio.sleep(0)
        client.resolve(0, Success(tuple(_features(5))))
        await controller.wait_idle()

    asyncio.run(scenario())

    assert len(store.state.features) == 1
    assert store.state.loading is False
    assert client.calls[1]["area"].origin.x == 11


def test_disarm_releases_resources_and_drops_in_flight_response():
    client = GatedQueryClient()
    controller, map_view, store, _ = _controller(client)

    async def scenario():
        controller.arm()
        map_view.draw_tool.finish(Point(x=10, y=20))
        while not client.calls:
            await asyncio.sleep(0)
        tool = map_view.draw_tool

        controller.disarm()
        controller.disarm()
        assert not tool.has_listener

        seen = []
        store.subscribe(seen.append)
        client.resolve(0, Success(tuple(_features(2))))
        await controller.wait_idle()
        return seen

    seen = asyncio.run(scenario())

    assert seen == []
    assert store.state.features == ()
    assert map_view.interactions == []
    assert map_view.layers == []
    assert controller.state == DrawState.IDLE


def test_new_gesture_clears_previous_artifacts():
    controller, map_view, _, _ = _controller(StubQueryClient(outcome_from_features(_features(1))))

    async def scenario():
        controller.arm()
        await controller.handle_point(Point(x=10, y=20))
        await controller.handle_point(Point(x=12, y=22))

    asyncio.run(scenario())

    overlay = map_view.layers[0]
    assert overlay.styles() == ["point", "zone"]
    assert overlay.items[0][1]["coordinates"] == [12, 22]


def test_draw_event_without_running_loop_is_ignored():
    client = StubQueryClient(Empty())
    controller, map_view, store, _ = _controller(client)

    controller.arm()
    map_view.draw_tool.finish(Point(x=10, y=20))

    assert client.calls == []
    assert store.state.request_seq == 0


def test_failing_store_subscriber_does_not_escape_the_gesture():
    controller, map_view, store, _ = _controller(StubQueryClient(outcome_from_features(_features(2))))

    def broken(state):
        if state.features:
            raise RuntimeError("table widget crashed")

    store.subscribe(broken)

    async def scenario():
        controller.arm()
        await controller.handle_point(Point(x=10, y=20))

    asyncio.run(scenario())

    assert len(store.state.features) == 2
    assert controller.state == DrawState.DRAWING
    assert map_view.layers[0].styles() == ["point", "zone"]
