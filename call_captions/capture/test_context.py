"""Tests for the capture context lifecycle and chunk pipeline."""

import threading
from functools import partial
from unittest.mock import MagicMock, patch

import pytest

from shared.config import PipelineConfig

from ..asr.engine import InferenceEngine
from ..audio.utils import resample_audio
from ..conftest import FakeBackend, FakeMediaHost, FakePipeline, FakeRecorder, silent_wav, wait_until
from ..errors import CapturePermissionError, DeviceUnavailableError
from ..messages import (
    CaptureError,
    CaptureStarted,
    EngineStatus,
    EngineTranscript,
    InferenceStatus,
    ModelLoading,
    StartCapture,
    StopCapture,
    TranscriptionFailed,
    TranscriptReady,
)
from .context import CaptureContext
from .media import CaptureTarget


def make_context(sent, backend, pipeline=None, load_error=None, **config):
    pipeline = pipeline if pipeline is not None else FakePipeline()

    def pipeline_factory(model_name):
        if load_error is not None:
            raise load_error
        return pipeline

    config.setdefault("heartbeat_sec", 60.0)
    return CaptureContext(
        sent.append,
        backend,
        PipelineConfig(**config),
        engine_factory=partial(InferenceEngine, pipeline_factory=pipeline_factory),
        recorder_factory=FakeRecorder,
    )


def new_handle():
    return FakeMediaHost().get_media_handle(CaptureTarget("call"))


def of_type(sent, message_type):
    return [m for m in sent if isinstance(m, message_type)]


async def start_session(context, handle, session_id=1):
    context.start()
    context.post(StartCapture(handle, session_id))
    await wait_until(lambda: context.session is not None and context.is_recording)
    return FakeRecorder.instances[-1]


class TestStartCapture:
    """Tests for bringing a capture session up."""

    @pytest.mark.asyncio
    async def test_start_allocates_session_resources(self):
        """Test stream, graph, engine, recorder and heartbeat are all started."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        handle = new_handle()

        recorder = await start_session(context, handle)

        session = context.session
        assert session.handle is handle
        assert backend.streams[0].started == 1
        assert backend.outputs[0].started == 1
        assert backend.outputs[0].device_index == 1
        assert session.graph.connected
        assert session.engine.running
        assert recorder.timeslice_ms == 2000
        assert recorder.sample_rate == 48000
        assert context.heartbeat.running
        await context.close()

    @pytest.mark.asyncio
    async def test_frames_reach_playback(self):
        """Test captured frames are played back so the source stays audible."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        await start_session(context, new_handle())

        backend.streams[0].on_frames(b"\x01\x00\x01\x00")

        assert backend.outputs[0].written == [b"\x01\x00\x01\x00"]
        await context.close()

    @pytest.mark.asyncio
    async def test_audible_source_gets_no_playback(self):
        """Test a microphone or monitor source is captured without replaying it."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        handle = FakeMediaHost(playback=False).get_media_handle(CaptureTarget("mic"))

        await start_session(context, handle)
        backend.streams[0].on_frames(b"\x01\x00\x01\x00")

        assert backend.outputs == []
        assert context.session.graph is None
        assert context.session.engine.running

        await context.stop_capture()
        assert backend.streams[0].closed == 1
        await context.close()

    @pytest.mark.asyncio
    async def test_second_start_is_ignored(self):
        """Test StartCapture while recording creates no new stream, engine or heartbeat."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        engine_factory = MagicMock(wraps=context._engine_factory)
        context._engine_factory = engine_factory
        await start_session(context, new_handle())
        session, heartbeat_task = context.session, context.heartbeat._task

        await context.handle(StartCapture(new_handle(), 2))

        assert backend.open_calls == 1
        assert len(FakeRecorder.instances) == 1
        assert engine_factory.call_count == 1
        assert context.session is session
        assert context.session.engine.running
        assert context.heartbeat._task is heartbeat_task
        assert context.heartbeat.running
        await context.close()

    @pytest.mark.asyncio
    async def test_permission_denied_reports_capture_error(self):
        """Test acquisition failure sends one CaptureError and allocates nothing."""
        sent = []
        backend = FakeBackend(open_error=CapturePermissionError("Permission denied"))
        context = make_context(sent, backend)
        handle = new_handle()

        await context.handle(StartCapture(handle, 4))

        assert sent == [CaptureError("Permission denied", 4)]
        assert FakeRecorder.instances == []
        assert backend.outputs == []
        assert context.session is None
        assert not context.heartbeat.running
        assert handle.revoked

    @pytest.mark.asyncio
    async def test_playback_failure_tears_down(self):
        """Test a failure after acquisition releases the stream."""
        sent, backend = [], FakeBackend()

        def no_output(sample_rate, channels, device_index=None):
            raise DeviceUnavailableError("No output device for playback")

        backend.open_output = no_output
        context = make_context(sent, backend)

        await context.handle(StartCapture(new_handle(), 5))

        assert of_type(sent, CaptureError) == [CaptureError("No output device for playback", 5)]
        assert backend.streams[0].closed == 1
        assert context.session is None
        assert not context.heartbeat.running


class TestChunkPipeline:
    """Tests for decode → resample → engine → orchestrator."""

    @pytest.mark.asyncio
    async def test_three_silent_chunks(self):
        """Test three silent chunks: three resamples, one start report, one teardown."""
        sent, backend = [], FakeBackend()
        pipeline = FakePipeline(text="")
        context = make_context(sent, backend, pipeline=pipeline)
        handle = new_handle()
        recorder = await start_session(context, handle, session_id=3)

        with patch(
            "call_captions.capture.context.resample_audio", wraps=resample_audio
        ) as resample:
            for count in range(1, 4):
                recorder.emit(silent_wav())
                await wait_until(lambda: len(of_type(sent, TranscriptReady)) == count)

        assert resample.call_count == 3
        assert of_type(sent, CaptureStarted) == [CaptureStarted(3)]
        assert of_type(sent, ModelLoading) == [ModelLoading(3)]
        assert all(m.text == "" for m in of_type(sent, TranscriptReady))
        assert of_type(sent, CaptureError) == []

        context.post(StopCapture())
        await wait_until(lambda: context.session is None)
        context.post(StopCapture())
        await wait_until(lambda: context.inbox.empty())

        assert recorder.stop_calls == 1
        assert backend.streams[0].closed == 1
        assert backend.outputs[0].closed == 1
        assert handle.revoked
        assert not context.heartbeat.running
        await context.close()

    @pytest.mark.asyncio
    async def test_engine_receives_16khz_chunk(self):
        """Test the pipeline is called with 16 kHz audio and fixed decoding options."""
        sent, backend = [], FakeBackend()
        pipeline = FakePipeline(text="hello")
        context = make_context(sent, backend, pipeline=pipeline)
        recorder = await start_session(context, new_handle())

        recorder.emit(silent_wav(seconds=2.0, sample_rate=48000))
        await wait_until(lambda: of_type(sent, TranscriptReady))

        inputs, kwargs = pipeline.calls[0]
        assert inputs["sampling_rate"] == 16000
        assert len(inputs["raw"]) == 32000
        assert kwargs["chunk_length_s"] == 30
        assert kwargs["stride_length_s"] == 5
        assert kwargs["generate_kwargs"] == {"task": "transcribe", "language": "en"}
        assert of_type(sent, TranscriptReady) == [TranscriptReady("hello", 1)]
        await context.close()

    @pytest.mark.asyncio
    async def test_undecodable_chunk_is_skipped(self):
        """Test a corrupt blob is reported and capture continues."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        recorder = await start_session(context, new_handle())

        recorder.emit(b"garbage")

        failures = of_type(sent, TranscriptionFailed)
        assert len(failures) == 1
        assert context.session is not None
        assert context.session.chunks == 0
        await context.close()

    @pytest.mark.asyncio
    async def test_model_load_failure_is_fatal(self):
        """Test a model that cannot load produces ModelLoading then CaptureError."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend, load_error=OSError("model missing"))
        recorder = await start_session(context, new_handle(), session_id=6)

        recorder.emit(silent_wav())
        await wait_until(lambda: of_type(sent, CaptureError))

        assert of_type(sent, ModelLoading) == [ModelLoading(6)]
        assert of_type(sent, CaptureError) == [CaptureError("Model error: model missing", 6)]
        assert of_type(sent, CaptureStarted) == []
        await context.close()

    @pytest.mark.asyncio
    async def test_transcription_failure_is_not_fatal(self):
        """Test a failing chunk yields TranscriptionFailed and capture continues."""

        class FlakyPipeline(FakePipeline):
            def __call__(self, inputs, **kwargs):
                self.calls.append((inputs, kwargs))
                if len(self.calls) == 1:
                    raise RuntimeError("CUDA out of memory")
                return {"text": " recovered "}

        sent, backend = [], FakeBackend()
        context = make_context(sent, backend, pipeline=FlakyPipeline())
        recorder = await start_session(context, new_handle())

        recorder.emit(silent_wav())
        await wait_until(lambda: of_type(sent, TranscriptionFailed))
        recorder.emit(silent_wav())
        await wait_until(lambda: of_type(sent, TranscriptReady))

        assert of_type(sent, TranscriptionFailed) == [TranscriptionFailed("CUDA out of memory", 1)]
        assert of_type(sent, TranscriptReady) == [TranscriptReady("recovered", 1)]
        assert of_type(sent, CaptureError) == []
        await context.close()


class TestStopCapture:
    """Tests for the single teardown path."""

    @pytest.mark.asyncio
    async def test_stop_without_session_is_noop(self):
        """Test stopping an idle context raises nothing and sends nothing."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)

        await context.stop_capture()
        await context.stop_capture()

        assert sent == []
        assert backend.open_calls == 0

    @pytest.mark.asyncio
    async def test_stop_while_inference_in_flight(self):
        """Test stop completes without waiting and the late result is dropped."""
        release = threading.Event()
        entered = threading.Event()

        class BlockingPipeline(FakePipeline):
            def __call__(self, inputs, **kwargs):
                entered.set()
                release.wait(timeout=5)
                return {"text": "too late"}

        sent, backend = [], FakeBackend()
        context = make_context(sent, backend, pipeline=BlockingPipeline())
        recorder = await start_session(context, new_handle())
        recorder.emit(silent_wav())
        await wait_until(entered.is_set)

        context.post(StopCapture())
        await wait_until(lambda: context.session is None)
        release.set()
        await wait_until(lambda: context.inbox.empty())

        assert of_type(sent, TranscriptReady) == []
        assert recorder.stop_calls == 1
        await context.close()

    @pytest.mark.asyncio
    async def test_teardown_continues_after_step_failure(self):
        """Test a failing release step does not skip the remaining ones."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        handle = new_handle()
        await start_session(context, handle)

        def broken_close():
            raise OSError("stream already gone")

        backend.streams[0].close = broken_close
        await context.stop_capture()

        assert backend.outputs[0].closed == 1
        assert handle.revoked
        assert context.session is None

    @pytest.mark.asyncio
    async def test_restart_after_stop_uses_new_handle(self):
        """Test a second activation gets fresh resources."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        first = new_handle()
        await start_session(context, first, session_id=1)
        await context.stop_capture()

        second = new_handle()
        await start_session(context, second, session_id=2)

        assert first.revoked
        assert not second.revoked
        assert len(backend.streams) == 2
        assert context.session.activation == 2
        await context.close()


class TestEngineEvents:
    """Tests for mapping engine events onto orchestrator messages."""

    @pytest.mark.asyncio
    async def test_events_from_ended_session_are_discarded(self):
        """Test events tagged with an old activation never reach the orchestrator."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        await start_session(context, new_handle())
        current = context.session.activation

        await context.handle(EngineTranscript("stale", activation=current + 10))
        await context.handle(EngineStatus(InferenceStatus.MODEL_READY, activation=current + 10))

        assert sent == []
        await context.close()

    @pytest.mark.asyncio
    async def test_events_without_session_are_discarded(self):
        """Test events arriving after stop are dropped."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)

        await context.handle(EngineTranscript("orphan", activation=1))

        assert sent == []

    @pytest.mark.asyncio
    async def test_capture_started_sent_once(self):
        """Test repeated MODEL_READY produces a single CaptureStarted."""
        sent, backend = [], FakeBackend()
        context = make_context(sent, backend)
        await start_session(context, new_handle(), session_id=9)
        activation = context.session.activation

        await context.handle(EngineStatus(InferenceStatus.MODEL_READY, activation=activation))
        await context.handle(EngineStatus(InferenceStatus.MODEL_READY, activation=activation))

        assert sent == [CaptureStarted(9)]
        await context.close()
