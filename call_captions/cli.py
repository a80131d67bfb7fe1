"""
Call Captions - live captions for call audio.

Captures a loopback (or any input) device, transcribes it in 2-second chunks
with a local Whisper model and prints captions as they arrive. Captured audio
is played back on the default output device so the call stays audible.

Usage:
  call-captions                      # First loopback device, else default input
  call-captions --device 3           # Device by index
  call-captions --device BlackHole   # Device by name
  call-captions --ws-port 8765       # Also push captions to WebSocket clients
  call-captions --list-devices       # Show available devices

While running, press Enter to stop/start captioning, type h for recent
captions and q to quit.
"""

import argparse
import asyncio
import logging
import sys

from shared.config import PipelineConfig, load_pipeline_config
from shared.utils import quiet_loggers, set_log_level, setup_logging

from .app import ServiceHost
from .audio.devices import list_devices
from .capture.media import CaptureTarget
from .capture.portaudio import PortAudioHost
from .consumers import DEFAULT_WS_HOST, ConsoleConsumer, WebSocketConsumer
from .messages import Trigger
from .orchestrator import Indicator, StatusIndicator, TranscriptSink

logger = logging.getLogger(__name__)

QUIT_COMMANDS = ("q", "quit", "exit")
HISTORY_COMMANDS = ("h", "history")

STATUS_LABELS = {
    Indicator.CLEAR: "stopped",
    Indicator.WORKING: "starting...",
    Indicator.ACTIVE: "listening",
    Indicator.ERROR: "error",
}


class CallCaptions:
    """Terminal front end driving one capture target."""

    def __init__(
        self,
        config: PipelineConfig,
        target: CaptureTarget,
        ws_port: int | None = None,
        ws_host: str = DEFAULT_WS_HOST,
        media_host: PortAudioHost | None = None,
        stdin=None,
    ):
        self.config = config
        self.target = target
        self.stdin = stdin or sys.stdin
        self.media_host = media_host or PortAudioHost()

        self.sink = TranscriptSink()
        self.sink.attach(ConsoleConsumer())
        self.ws_consumer = WebSocketConsumer(ws_host, ws_port) if ws_port else None
        if self.ws_consumer is not None:
            self.sink.attach(self.ws_consumer)

        self.indicator = StatusIndicator(on_change=self._on_status)
        self.host = ServiceHost(
            self.media_host,
            self.media_host,
            config=config,
            sink=self.sink,
            indicator=self.indicator,
        )

    @staticmethod
    def _on_status(target_id: str | None, indicator: Indicator):
        label = STATUS_LABELS[indicator]
        print(f"● {target_id or 'captions'}: {label}", flush=True)

    def toggle(self):
        self.host.post(Trigger(self.target))

    async def run(self):
        if self.ws_consumer is not None:
            await self.ws_consumer.start()
        await self.host.start()
        self.toggle()
        try:
            await self._keyboard_loop()
        finally:
            await self.close()

    async def _keyboard_loop(self):
        while True:
            line = await asyncio.to_thread(self.stdin.readline)
            if not line:
                # EOF, keep running until interrupted
                await asyncio.Event().wait()
            command = line.strip().lower()
            if command in QUIT_COMMANDS:
                return
            if command in HISTORY_COMMANDS:
                self.print_history()
                continue
            self.toggle()

    def print_history(self):
        events = self.host.history.recent(self.config.history_max_age_sec)
        if not events:
            print("(no recent captions)", flush=True)
            return
        for event in reversed(events):
            print(f"  {event.text}", flush=True)

    async def close(self):
        await self.host.close()
        if self.ws_consumer is not None:
            await self.ws_consumer.close()
        self.media_host.close()


def device_arg(value: str) -> int | str:
    """Device index when numeric, otherwise a device name fragment."""
    return int(value) if value.strip().isdigit() else value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Call Captions - live captions for call audio")
    parser.add_argument(
        "--device",
        type=device_arg,
        help="Capture device index or name (default: first loopback device)",
    )
    parser.add_argument("--model", help="Whisper model name or path (env: CAPTIONS_MODEL)")
    parser.add_argument(
        "--language", help="Transcription language code, e.g. 'en' (env: CAPTIONS_LANGUAGE)"
    )
    parser.add_argument(
        "--ws-port", type=int, help="Serve captions to WebSocket clients on this port"
    )
    parser.add_argument(
        "--ws-host", default=DEFAULT_WS_HOST, help=f"WebSocket bind address (default: {DEFAULT_WS_HOST})"
    )
    parser.add_argument("--history-path", help="Persist recent transcripts to this JSON file")
    parser.add_argument("--list-devices", action="store_true", help="List available audio devices")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    config = load_pipeline_config()
    if args.model:
        config.model = args.model
    if args.language:
        config.language = args.language
    if args.history_path:
        config.history_path = args.history_path
    return config


def main(argv: list[str] | None = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.list_devices:
        list_devices()
        return

    setup_logging()
    quiet_loggers()
    if args.debug:
        set_log_level("DEBUG")

    config = config_from_args(args)
    target = CaptureTarget(id="call", device=args.device)

    print("+======================================+")
    print("|            Call Captions             |")
    print("+======================================+")
    print(f"Model: {config.model}")
    print(f"Language: {config.language}")
    print(f"Device: {args.device if args.device is not None else 'auto (loopback)'}")
    if args.ws_port:
        print(f"WebSocket: ws://{args.ws_host}:{args.ws_port}")
    print()
    print("Enter: stop/start   h: recent captions   q: quit")
    print()

    app = CallCaptions(config, target, ws_port=args.ws_port, ws_host=args.ws_host)
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        pass
    logger.info("Call Captions stopped")


if __name__ == "__main__":
    main()
