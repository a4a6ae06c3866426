"""Tests for turn aggregation."""

from gateway.dialogue import aggregate
from gateway.models import ImageContent, TextContent


class TestAggregate:

    def test_empty(self):
        assert aggregate([]) == ""

    def test_single_message_verbatim(self):
        assert aggregate([TextContent("ราคาที่นอน 6 ฟุต")]) == "ราคาที่นอน 6 ฟุต"

    def test_several_messages_numbered_in_order(self):
        text = aggregate([TextContent("a"), TextContent("b")])

        assert text == "สรุปคำถาม 2 ข้อความจากลูกค้า:\n1. a\n2. b"

    def test_image_rendered_as_marker(self):
        assert aggregate([ImageContent("m1")]) == "[image:m1]"
