"""
Codec tests for store keys and records.
"""

import pytest

from app.schemas import Config, Image
from app.utils.codec import decode_key, decode_record, encode_key, encode_record


class TestKeys:

    def test_keys_are_eight_bytes_big_endian(self):
        assert encode_key(1) == b"\x00\x00\x00\x00\x00\x00\x00\x01"
        assert encode_key(258) == b"\x00\x00\x00\x00\x00\x00\x01\x02"

    def test_byte_order_matches_numeric_order(self):
        values = [0, 1, 255, 256, 70000, 2 ** 40]
        assert sorted(values, key=encode_key) == values

    def test_negative_key_rejected(self):
        with pytest.raises(ValueError):
            encode_key(-1)

    def test_wrong_width_rejected(self):
        with pytest.raises(ValueError):
            decode_key(b"\x01")


class TestRecords:

    def test_image_record_decodes(self):
        raw = encode_record(Image(id=3, path="a.jpg"))
        image = decode_record(raw, Image)
        assert image.id == 3
        assert image.type.value == "IMAGE"
        assert image.metadata == ""

    @pytest.mark.parametrize("raw", [b"", b"{not json", b'{"image_duration": "soon"}'])
    def test_malformed_record_raises_value_error(self, raw):
        with pytest.raises(ValueError):
            decode_record(raw, Config)
