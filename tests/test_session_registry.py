import asyncio

import pytest

from faststyle.models import MockBackend, SessionRegistry, SessionState, StyleName
from faststyle.utils.config import InferenceSettings
from faststyle.utils.errors import ModelLoadError

from tests.conftest import write_artifact


class TestArtifactPath:
    def test_every_style_has_an_artifact(self, registry, models_dir):
        for style in StyleName:
            assert registry.artifact_path(style) == models_dir / f"{style.value}-9.onnx"

    def test_accepts_string_names(self, registry, models_dir):
        assert registry.artifact_path("rain-princess") == models_dir / "rain-princess-9.onnx"

    def test_custom_template(self, models_dir, backend):
        settings = InferenceSettings(models_dir=models_dir, artifact_template="styles/{style}.onnx")
        registry = SessionRegistry(settings, backend=backend)
        assert registry.artifact_path(StyleName.UDNIE) == models_dir / "styles" / "udnie.onnx"

    def test_unknown_style(self, registry):
        with pytest.raises(ValueError):
            registry.artifact_path("starry-night")


class TestAcquire:
    def test_loads_once_and_caches(self, registry, backend):
        async def main():
            first = await registry.acquire(StyleName.MOSAIC)
            second = await registry.acquire("mosaic")
            return first, second

        first, second = asyncio.run(main())
        assert first is second
        assert backend.load_count == 1
        assert registry.state(StyleName.MOSAIC) is SessionState.READY
        assert first.input_name == "input1"
        assert first.output_name == "output1"
        assert first.load_time >= 0

    def test_concurrent_first_access_constructs_once(self, settings):
        backend = MockBackend(load_delay=0.05)
        registry = SessionRegistry(settings, backend=backend)

        async def main():
            return await asyncio.gather(*[registry.acquire(StyleName.CANDY) for _ in range(16)])

        sessions = asyncio.run(main())
        assert backend.load_count == 1
        assert len(sessions) == 16
        assert all(s is sessions[0] for s in sessions)

    def test_state_is_loading_while_in_flight(self, settings):
        registry = SessionRegistry(settings, backend=MockBackend(load_delay=0.05))

        async def main():
            task = asyncio.ensure_future(registry.acquire(StyleName.UDNIE))
            await asyncio.sleep(0)
            loading = registry.state(StyleName.UDNIE)
            await task
            return loading

        assert asyncio.run(main()) is SessionState.LOADING
        assert registry.state(StyleName.UDNIE) is SessionState.READY

    def test_styles_are_isolated(self, registry, backend):
        async def main():
            return await asyncio.gather(
                registry.acquire(StyleName.MOSAIC),
                registry.acquire(StyleName.CANDY),
            )

        mosaic, candy = asyncio.run(main())
        assert mosaic is not candy
        assert mosaic.style is StyleName.MOSAIC
        assert candy.style is StyleName.CANDY
        assert backend.load_count == 2
        assert set(registry.cached_styles()) == {StyleName.MOSAIC, StyleName.CANDY}

    def test_missing_artifact_is_retryable(self, registry, backend, models_dir):
        (models_dir / "udnie-9.onnx").unlink()

        with pytest.raises(ModelLoadError) as excinfo:
            asyncio.run(registry.acquire(StyleName.UDNIE))

        assert excinfo.value.kind == "model_load"
        assert excinfo.value.style == "udnie"
        assert excinfo.value.path == models_dir / "udnie-9.onnx"
        assert registry.state(StyleName.UDNIE) is SessionState.ABSENT
        assert backend.load_count == 0

        write_artifact(models_dir, StyleName.UDNIE)
        session = asyncio.run(registry.acquire(StyleName.UDNIE))
        assert registry.state(StyleName.UDNIE) is SessionState.READY
        assert session.artifact_path == models_dir / "udnie-9.onnx"

    def test_backend_rejection_is_model_load_error(self, registry, models_dir):
        write_artifact(models_dir, StyleName.POINTILISM, b"corrupt model")

        with pytest.raises(ModelLoadError) as excinfo:
            asyncio.run(registry.acquire(StyleName.POINTILISM))

        assert "protobuf parsing failed" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert registry.state(StyleName.POINTILISM) is SessionState.ABSENT

    def test_concurrent_waiters_all_see_failure(self, settings, models_dir):
        (models_dir / "candy-9.onnx").unlink()
        registry = SessionRegistry(settings, backend=MockBackend(load_delay=0.02))

        async def main():
            return await asyncio.gather(
                *[registry.acquire(StyleName.CANDY) for _ in range(4)],
                return_exceptions=True
            )

        results = asyncio.run(main())
        assert all(isinstance(r, ModelLoadError) for r in results)
        assert registry.state(StyleName.CANDY) is SessionState.ABSENT

    def test_cancelled_waiter_does_not_leave_loading(self, settings):
        backend = MockBackend(load_delay=0.05)
        registry = SessionRegistry(settings, backend=backend)

        async def main():
            task = asyncio.ensure_future(registry.acquire(StyleName.MOSAIC))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            # The shared load keeps running and lands in the cache
            for _ in range(100):
                if registry.state(StyleName.MOSAIC) is not SessionState.LOADING:
                    break
                await asyncio.sleep(0.01)
            return registry.state(StyleName.MOSAIC)

        assert asyncio.run(main()) is SessionState.READY
        assert backend.load_count == 1


class TestEvictAll:
    def test_evict_releases_and_reloads(self, registry, backend):
        async def main():
            await registry.acquire(StyleName.MOSAIC)
            first = await registry.acquire(StyleName.CANDY)
            released = registry.evict_all()
            second = await registry.acquire(StyleName.CANDY)
            return first, second, released

        first, second, released = asyncio.run(main())
        assert released == 2
        assert len(backend.released) == 2
        assert first is not second
        assert backend.load_count == 3
        assert registry.cached_styles() == [StyleName.CANDY]

    def test_evict_empty_registry(self, registry):
        assert registry.evict_all() == 0
        assert registry.cached_styles() == []


class TestSerialization:
    def test_mock_backend_gets_a_lock(self, registry):
        session = asyncio.run(registry.acquire(StyleName.MOSAIC))
        assert registry.serialize_inference is True
        assert session.lock is not None

    def test_configuration_overrides_backend_flag(self, models_dir, backend):
        settings = InferenceSettings(models_dir=models_dir, serialize_inference=False)
        registry = SessionRegistry(settings, backend=backend)
        session = asyncio.run(registry.acquire(StyleName.MOSAIC))
        assert session.lock is None

    def test_evict_during_load_does_not_cache_stale_session(self, settings):
        backend = MockBackend(load_delay=0.05)
        registry = SessionRegistry(settings, backend=backend)

        async def main():
            pending = asyncio.ensure_future(registry.acquire(StyleName.UDNIE))
            await asyncio.sleep(0.01)
            assert registry.evict_all() == 0
            assert registry.state(StyleName.UDNIE) is SessionState.ABSENT

            stale = await pending
            assert registry.cached_styles() == []

            fresh = await registry.acquire(StyleName.UDNIE)
            return stale, fresh

        stale, fresh = asyncio.run(main())
        assert stale is not fresh
        assert backend.load_count == 2
        assert registry.cached_styles() == [StyleName.UDNIE]
        assert asyncio.run(registry.acquire(StyleName.UDNIE)) is fresh

    def test_evict_during_load_then_new_caller_starts_fresh_load(self, settings):
        backend = MockBackend(load_delay=0.05)
        registry = SessionRegistry(settings, backend=backend)

        async def main():
            pending = asyncio.ensure_future(registry.acquire(StyleName.MOSAIC))
            await asyncio.sleep(0.01)
            registry.evict_all()
            fresh, stale = await asyncio.gather(registry.acquire(StyleName.MOSAIC), pending)
            return stale, fresh

        stale, fresh = asyncio.run(main())
        assert stale is not fresh
        assert backend.load_count == 2
        assert registry.state(StyleName.MOSAIC) is SessionState.READY
        assert registry.cached_styles() == [StyleName.MOSAIC]
