import io

from PIL import Image

from share_assistant.screen_capture import DeviceCapturer


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (4, 4), (255, 0, 0, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


class _Device:
    def __init__(self, payload=b"", error=None):
        self.payload = payload
        self.error = error

    def screencap(self):
        if self.error:
            raise self.error
        return self.payload


def test_png_capture_is_written_verbatim(tmp_path):
    payload = _png_bytes()
    path = DeviceCapturer(_Device(payload), output_dir=tmp_path).capture("accept-button")
    assert path.parent == tmp_path
    assert path.name.startswith("failure_accept-button_")
    assert path.read_bytes() == payload


def test_jpeg_capture_is_reencoded(tmp_path):
    capturer = DeviceCapturer(_Device(_png_bytes()), output_dir=tmp_path, image_format="jpg")
    path = capturer.capture()
    assert path.suffix == ".jpeg"
    with Image.open(path) as image:
        assert image.format == "JPEG"


def test_failure_hook_interface(tmp_path):
    capturer = DeviceCapturer(_Device(_png_bytes()), output_dir=tmp_path, prefix="flow")
    capturer("confirm-button")
    assert [p.name.split("_")[1] for p in tmp_path.iterdir()] == ["confirm-button"]


def test_device_errors_and_empty_frames_save_nothing(tmp_path):
    assert DeviceCapturer(_Device(error=RuntimeError("offline")), output_dir=tmp_path).capture() is None
    assert DeviceCapturer(_Device(b""), output_dir=tmp_path).capture() is None
    assert list(tmp_path.iterdir()) == []
