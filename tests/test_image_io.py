import re

import pytest
from PIL import Image
from psd_tools import PSDImage

from family_crop.errors import DecodeError
from family_crop.image_io import (
    check_file, guess_content_type, open_image, safe_extname, upload_filename,
)


def test_open_png(tmp_path):
    path = tmp_path / "a.png"
    Image.new("RGB", (30, 20), (1, 2, 3)).save(path)
    img = open_image(path)
    assert img.size == (30, 20)
    assert img.mode == "RGB"


def test_transparency_is_kept(tmp_path):
    path = tmp_path / "t.png"
    Image.new("RGBA", (8, 8), (0, 0, 0, 0)).save(path)
    assert open_image(path).mode == "RGBA"


def test_grayscale_converted(tmp_path):
    path = tmp_path / "g.jpg"
    Image.new("L", (8, 8), 128).save(path)
    assert open_image(path).mode == "RGB"


def test_exif_orientation_applied(tmp_path):
    path = tmp_path / "rotated.jpg"
    exif = Image.Exif()
    exif[0x0112] = 6  # rotate 90 CW on display
    Image.new("RGB", (40, 20)).save(path, exif=exif)
    assert open_image(path).size == (20, 40)


def test_corrupt_file(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nnope")
    with pytest.raises(DecodeError):
        open_image(path)


def test_wrong_extension(tmp_path):
    path = tmp_path / "doc.pdf"
    path.write_bytes(b"%PDF")
    with pytest.raises(DecodeError, match="Only image files"):
        open_image(path)


def test_empty_and_oversized(tmp_path):
    empty = tmp_path / "empty.jpg"
    empty.write_bytes(b"")
    with pytest.raises(DecodeError, match="empty"):
        check_file(empty)

    big = tmp_path / "big.jpg"
    big.write_bytes(b"0" * 2048)
    with pytest.raises(DecodeError, match="larger than"):
        check_file(big, max_bytes=1024)
    assert check_file(big) == 2048


def test_missing_file(tmp_path):
    with pytest.raises(DecodeError):
        check_file(tmp_path / "gone.png")


@pytest.mark.parametrize("name, ext", [
    ("photo.JPG", ".jpg"), ("a.webp", ".webp"), ("b.gif", ".gif"),
    ("scan.tiff", ".jpg"), ("noext", ".jpg"), ("", ".jpg"),
])
def test_safe_extname(name, ext):
    assert safe_extname(name) == ext


def test_guess_content_type():
    assert guess_content_type("a.png") == "image/png"
    assert guess_content_type("a.jpeg") == "image/jpeg"
    assert guess_content_type("a.txt") == "application/octet-stream"


def test_upload_filename():
    assert re.fullmatch(r"landing-bg-\d{13}\.jpg", upload_filename("landing-bg"))
    assert upload_filename("cover", ".png").endswith(".png")


def test_open_psd(tmp_path):
    path = tmp_path / "layered.psd"
    PSDImage.frompil(Image.new("RGB", (20, 10), (200, 40, 40))).save(str(path))
    img = open_image(path)
    assert img.size == (20, 10)
    assert img.mode in ("RGB", "RGBA")
    assert img.getpixel((5, 5))[:3] == (200, 40, 40)


def test_decompression_bomb_is_a_decode_error(tmp_path):
    # 180 MP bilevel PNG: small on disk, above Pillow's pixel limit
    path = tmp_path / "huge.png"
    Image.new("1", (15000, 12000)).save(path)
    with pytest.raises(DecodeError, match="too many pixels"):
        open_image(path)
