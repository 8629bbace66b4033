import numpy as np
import pytest
from PIL import Image, ImageDraw

from faststyle.models import MockBackend, SessionRegistry, StyleName
from faststyle.models.types import ImageBuffer
from faststyle.services import StyleTransferService
from faststyle.utils.config import InferenceSettings


def build_image(width, height, channels=4, alpha=255):
    """Opaque gradient image as an interleaved buffer."""
    xs = np.linspace(0, 255, width, dtype=np.float32)
    ys = np.linspace(0, 255, height, dtype=np.float32)
    pixels = np.zeros([height, width, channels], dtype=np.uint8)
    pixels[:, :, 0] = xs[np.newaxis, :]
    pixels[:, :, 1] = ys[:, np.newaxis]
    pixels[:, :, 2] = 128
    if channels == 4:
        pixels[:, :, 3] = alpha
    return ImageBuffer(pixels.tobytes(), width, height, channels)


def build_shapes_image(size=512):
    """Simple geometric shapes on white, as a PIL image."""
    image = Image.new("RGB", (size, size), "white")
    draw = ImageDraw.Draw(image)
    draw.rectangle([100, 100, 200, 200], fill="black")
    draw.ellipse([300, 150, 400, 250], fill="gray")
    return image


def write_artifact(models_dir, style, content=b"onnx-placeholder"):
    path = models_dir / f"{StyleName.parse(style).value}-9.onnx"
    path.write_bytes(content)
    return path


@pytest.fixture
def models_dir(tmp_path):
    directory = tmp_path / "models"
    directory.mkdir()
    for style in StyleName:
        write_artifact(directory, style)
    return directory


@pytest.fixture
def settings(models_dir):
    return InferenceSettings(models_dir=models_dir, backend="mock")


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def registry(settings, backend):
    return SessionRegistry(settings, backend=backend)


@pytest.fixture
def service(registry):
    return StyleTransferService(registry)


@pytest.fixture
def image():
    return build_image(512, 384)
