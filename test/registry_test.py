import pytest

from quay import Registry


async def first(job):
    return "first"


async def second(job):
    return "second"


class TestRegistry:
    def test_lookup_returns_registered_handler(self):
        registry = Registry()
        registry.register("send_email", first)

        assert registry.lookup("send_email") is first
        assert "send_email" in registry
        assert len(registry) == 1

    def test_lookup_of_unknown_type_is_none(self):
        assert Registry().lookup("missing") is None

    def test_last_registration_wins(self):
        registry = Registry()
        registry.register("send_email", first)
        registry.register("send_email", second)

        assert registry.lookup("send_email") is second
        assert len(registry) == 1

    def test_handler_decorator_registers_and_returns_function(self):
        registry = Registry()

        @registry.handler("sync_points")
        async def sync_points(job):
            pass

        assert registry.lookup("sync_points") is sync_points
        assert registry.types == ["sync_points"]

    def test_handlers_must_be_callable(self):
        with pytest.raises(TypeError, match="callable"):
            Registry().register("send_email", "not a function")
