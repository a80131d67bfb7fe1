"""Audio device enumeration and listing."""

import logging

logger = logging.getLogger(__name__)

# Virtual sinks: audio routed into them no longer reaches the speakers
DIVERTING_TOKENS = (
    "blackhole",
    "loopback",
    "soundflower",
    "cable output",
    "cable input",
    "vb-audio",
)

# Taps of a real output: the speakers keep playing what these capture
MONITOR_TOKENS = (
    "monitor of",
    "stereo mix",
    "立体声混音",
)

# Name fragments of virtual devices that carry what the speakers play
LOOPBACK_TOKENS = DIVERTING_TOKENS + MONITOR_TOKENS


def is_loopback_name(name: str) -> bool:
    name_low = name.lower()
    return any(token in name_low for token in LOOPBACK_TOKENS)


def is_diverting_name(name: str) -> bool:
    """Whether capturing this device means its audio is missing from the speakers."""
    name_low = name.lower()
    if any(token in name_low for token in MONITOR_TOKENS):
        return False
    return any(token in name_low for token in DIVERTING_TOKENS)


def input_devices(pa) -> list[dict]:
    """Return info dicts for every device with input channels."""
    devices = []
    for i in range(pa.get_device_count()):
        info = pa.get_device_info_by_index(i)
        if info["maxInputChannels"] > 0:
            devices.append(dict(info))
    return devices


def output_devices(pa) -> list[dict]:
    """Return info dicts for every device with output channels."""
    devices = []
    for i in range(pa.get_device_count()):
        info = pa.get_device_info_by_index(i)
        if info.get("maxOutputChannels", 0) > 0:
            devices.append(dict(info))
    return devices


def find_loopback_device(pa) -> dict | None:
    """First input device whose name marks it as a loopback/monitor source."""
    for info in input_devices(pa):
        if is_loopback_name(info["name"]):
            return info
    return None


def find_device_by_name(pa, fragment: str) -> dict | None:
    fragment_low = fragment.lower()
    for info in input_devices(pa):
        if fragment_low in info["name"].lower():
            return info
    return None


def list_devices():
    """Print available capture devices for --device N."""
    print("\n" + "=" * 65)
    print("CAPTURE DEVICES (for --device N or --device NAME)")
    print("=" * 65)

    import pyaudio

    p = pyaudio.PyAudio()
    try:
        default_index = _default_input_index(p)
        for info in input_devices(p):
            name = info["name"]
            rate = int(info["defaultSampleRate"])
            markers = []
            if is_loopback_name(name):
                markers.append("★ LOOPBACK")
            if info["index"] == default_index:
                markers.append("DEFAULT")
            marker = f" {' '.join(markers)}" if markers else ""
            print(f"  [{info['index']:2d}] {name} ({rate}Hz){marker}")
    finally:
        p.terminate()

    print("\n" + "=" * 65)
    print("💡 TIPS:")
    print("   • Without --device the first loopback device is captured")
    print("   • Route call audio to a loopback device (BlackHole, Stereo Mix,")
    print("     PulseAudio monitor) to caption the other side of a call")
    print("=" * 65)


def _default_input_index(pa) -> int | None:
    try:
        return int(pa.get_default_input_device_info()["index"])
    except OSError:
        # No default input device
        return None


def get_default_input_info(pa) -> dict | None:
    """Default input device info, or None when the host has none."""
    try:
        return dict(pa.get_default_input_device_info())
    except OSError:
        return None


def get_default_output_info(pa) -> dict | None:
    """Default output device info, used to play captured audio back."""
    try:
        return dict(pa.get_default_output_device_info())
    except OSError:
        return None


def find_playback_device(pa, exclude_index: int | None = None) -> dict | None:
    """
    Real output device to replay a diverted capture on.

    The default output is preferred unless it is itself a virtual sink (the
    usual BlackHole/VB-Cable setup routes system output there). Returns None
    when only virtual outputs or the captured device itself are left.
    """
    candidates = []
    default = get_default_output_info(pa)
    if default is not None:
        candidates.append(default)
    candidates.extend(output_devices(pa))

    for info in candidates:
        if exclude_index is not None and int(info["index"]) == exclude_index:
            continue
        if info.get("maxOutputChannels", 0) <= 0 or is_loopback_name(info["name"]):
            continue
        return info
    return None
