from audio_io import create_pyaudio
from config import load_config


def main():
    cfg = load_config()
    pa = create_pyaudio()
    try:
        default_index = int(pa.get_default_output_device_info()["index"])
    except OSError:
        default_index = None

    print("\n=== OUTPUT DEVICES (set OUTPUT_DEVICE_INDEX) ===\n")
    for i in range(pa.get_device_count()):
        info = pa.get_device_info_by_index(i)
        if info.get("maxOutputChannels", 0) <= 0:
            continue
        marks = []
        if i == default_index:
            marks.append("default")
        if i == cfg.output_device_index:
            marks.append("configured")
        suffix = f" <- {', '.join(marks)}" if marks else ""
        print(
            f"[OUT] Index {i}: {info['name']} | "
            f"rate={int(info['defaultSampleRate'])} | "
            f"channels={info['maxOutputChannels']}{suffix}"
        )

    pa.terminate()


if __name__ == "__main__":
    main()
