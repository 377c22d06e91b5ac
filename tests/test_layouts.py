"""Tests for emailoutput/output/layouts.py: subject and body rendering."""
from __future__ import annotations

import copy
import re
from datetime import timedelta, timezone

import pytest

from emailoutput.core.constants import level_full_name
from emailoutput.core.errors import ConfigurationError, DestinationError
from emailoutput.output.config import PluginConfig
from emailoutput.output.layouts import (
    CONTENT_TYPE_HTML,
    CONTENT_TYPE_PLAIN,
    LINK_TEXT,
    SEPARATOR,
    HtmlEmailLayout,
    PlainTextEmailLayout,
    RenderedEmail,
    create_layout,
    format_timestamp,
    render_email,
    resolve_timezone,
    select_fields,
)
from emailoutput.output.message import LogMessage, Stream


# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

def _plugin(
    *,
    subject_prefix: str | None = None,
    web_interface_url: str | None = None,
) -> PluginConfig:
    return PluginConfig(
        from_email="graylog@example.com",
        from_name="Graylog",
        hostname="smtp.example.com",
        port=25,
        use_tls=False,
        use_auth=False,
        subject_prefix=subject_prefix,
        web_interface_url=web_interface_url,
    )


def _message(**overrides) -> LogMessage:
    values = dict(
        id="m123",
        created_at=1700000000.1234,
        level=3,
        host="web-01",
        facility="nginx",
        short_message="upstream timed out",
        full_message=None,
        additional_data={},
        streams=[Stream(id="s1", title="Errors")],
    )
    values.update(overrides)
    return LogMessage(**values)


DESTINATION = {"receiver": "ops@example.com", "subject": "Disk full"}


# ===========================================================================
# level_full_name
# ===========================================================================

class TestLevelFullName:
    @pytest.mark.parametrize("level,name", [
        (0, "Emergency"),
        (1, "Alert"),
        (2, "Critical"),
        (3, "Error"),
        (4, "Warning"),
        (5, "Notice"),
        (6, "Informational"),
        (7, "Debug"),
    ])
    def test_known_levels(self, level, name):
        assert level_full_name(level) == name

    @pytest.mark.parametrize("level", [-1, 8, 999])
    def test_out_of_range_is_invalid(self, level):
        assert level_full_name(level) == "Invalid"


# ===========================================================================
# format_timestamp
# ===========================================================================

class TestFormatTimestamp:
    def test_utc_with_milliseconds(self):
        assert format_timestamp(1700000000.1234) == "2023-11-14T22:13:20.123 UTC"

    def test_sub_millisecond_is_truncated(self):
        assert format_timestamp(1700000000.9999) == "2023-11-14T22:13:20.999 UTC"

    def test_whole_seconds_pad_millis(self):
        assert format_timestamp(0.0) == "1970-01-01T00:00:00.000 UTC"

    def test_display_timezone_abbreviation(self):
        tz = timezone(timedelta(hours=2), "TST")
        assert format_timestamp(1700000000.5, tz) == "2023-11-15T00:13:20.500 TST"


# ===========================================================================
# Subject
# ===========================================================================

class TestSubject:
    def test_prefix_applied(self):
        layout = HtmlEmailLayout(_plugin(subject_prefix="[ALERT]"))
        assert layout.subject(_message(), DESTINATION) == "[ALERT] Disk full"

    def test_no_prefix(self):
        layout = HtmlEmailLayout(_plugin())
        assert layout.subject(_message(), DESTINATION) == "Disk full"

    def test_empty_prefix_is_ignored(self):
        layout = HtmlEmailLayout(_plugin(subject_prefix=""))
        assert layout.subject(_message(), DESTINATION) == "Disk full"

    def test_plain_layout_prefixes_once(self):
        layout = PlainTextEmailLayout(_plugin(subject_prefix="[ALERT]"))
        rendered = render_email(layout, _message(), DESTINATION)
        assert rendered.subject == "[ALERT] Disk full"


# ===========================================================================
# HtmlEmailLayout.body
# ===========================================================================

class TestHtmlBody:
    def test_header_rows_in_order(self):
        body = HtmlEmailLayout(_plugin()).body(_message(), DESTINATION)
        headers = re.findall(r'<th align="left">([^<]+)</th>', body)
        assert headers == ["Date", "Level", "Host", "Facility"]
        assert "<td>2023-11-14T22:13:20.123 UTC</td>" in body
        assert "<td>Error</td>" in body
        assert "<td>web-01</td>" in body
        assert "<td>nginx</td>" in body

    def test_wrapped_in_html_document(self):
        body = HtmlEmailLayout(_plugin()).body(_message(), DESTINATION)
        assert body.startswith("<html>\n<body>\n<table>")
        assert body.endswith("</body></html>\n")

    def test_short_message_used_without_full_message(self):
        body = HtmlEmailLayout(_plugin()).body(_message(), DESTINATION)
        assert "upstream timed out<br/>\n" in body

    def test_full_message_preferred(self):
        msg = _message(full_message="Traceback: boom")
        body = HtmlEmailLayout(_plugin()).body(msg, DESTINATION)
        assert "Traceback: boom<br/>\n" in body
        assert "upstream timed out" not in body

    def test_message_text_escaped(self):
        msg = _message(short_message="<script>alert('x') & \"y\"</script>")
        body = HtmlEmailLayout(_plugin()).body(msg, DESTINATION)
        assert "<script>" not in body
        assert (
            "&lt;script&gt;alert(&#x27;x&#x27;) &amp; &quot;y&quot;&lt;/script&gt;<br/>"
            in body
        )

    def test_already_escaped_text_is_escaped_once(self):
        msg = _message(short_message="a &amp; b")
        body = HtmlEmailLayout(_plugin()).body(msg, DESTINATION)
        assert "a &amp;amp; b<br/>" in body

    def test_header_values_escaped(self):
        msg = _message(host="<evil>")
        body = HtmlEmailLayout(_plugin()).body(msg, DESTINATION)
        assert "<td>&lt;evil&gt;</td>" in body

    def test_invalid_level_rendered(self):
        body = HtmlEmailLayout(_plugin()).body(_message(level=42), DESTINATION)
        assert "<td>Invalid</td>" in body

    def test_render_does_not_mutate_message(self):
        msg = _message(additional_data={"user": "a"})
        before = copy.deepcopy(msg)
        HtmlEmailLayout(_plugin(web_interface_url="https://g")).body(
            msg, {**DESTINATION, "fields": "user"}
        )
        assert msg == before


class TestPermalink:
    def test_link_present_with_web_url(self):
        layout = HtmlEmailLayout(_plugin(web_interface_url="https://graylog.example.com"))
        body = layout.body(_message(), DESTINATION)
        assert (
            f'<a href="https://graylog.example.com/messages/m123">{LINK_TEXT}</a>\n'
            in body
        )
        assert body.count(SEPARATOR) == 3

    @pytest.mark.parametrize("web_url", [None, ""])
    def test_link_and_separator_omitted_without_web_url(self, web_url):
        layout = HtmlEmailLayout(_plugin(web_interface_url=web_url))
        body = layout.body(_message(), DESTINATION)
        assert LINK_TEXT not in body
        assert "<a " not in body
        assert body.count(SEPARATOR) == 2

    def test_message_url(self):
        layout = HtmlEmailLayout(_plugin(web_interface_url="https://graylog.example.com"))
        assert layout.message_url(_message()) == "https://graylog.example.com/messages/m123"
        assert HtmlEmailLayout(_plugin()).message_url(_message()) is None


class TestFieldTable:
    FIELDS = {"user": "a", "request_id": "b", "zzz": "c"}

    def test_matching_fields_sorted(self):
        msg = _message(additional_data=dict(self.FIELDS))
        body = HtmlEmailLayout(_plugin()).body(
            msg, {**DESTINATION, "fields": "user|request_id"}
        )
        headers = re.findall(r'<th align="left">([^<]+)</th>', body)
        assert headers[4:] == ["request_id", "user"]
        assert "zzz" not in body
        assert body.count(SEPARATOR) == 3

    def test_pattern_must_match_whole_name(self):
        msg = _message(additional_data={"username": "a", "user": "b"})
        fields = select_fields(msg.additional_data, re.compile("user"))
        assert fields == [("user", "b")]

    def test_no_match_omits_table(self):
        msg = _message(additional_data=dict(self.FIELDS))
        body = HtmlEmailLayout(_plugin()).body(msg, {**DESTINATION, "fields": "nothing"})
        assert body.count("<table>") == 1
        assert body.count(SEPARATOR) == 2

    def test_no_pattern_omits_table(self):
        msg = _message(additional_data=dict(self.FIELDS))
        body = HtmlEmailLayout(_plugin()).body(msg, DESTINATION)
        assert body.count("<table>") == 1

    def test_empty_pattern_omits_table(self):
        msg = _message(additional_data=dict(self.FIELDS))
        body = HtmlEmailLayout(_plugin()).body(msg, {**DESTINATION, "fields": ""})
        assert body.count("<table>") == 1

    def test_none_value_renders_null(self):
        msg = _message(additional_data={"user": None})
        body = HtmlEmailLayout(_plugin()).body(msg, {**DESTINATION, "fields": "user"})
        assert "<td>null</td>" in body

    def test_values_escaped(self):
        msg = _message(additional_data={"user": "<b>bob</b>", "count": 3})
        body = HtmlEmailLayout(_plugin()).body(msg, {**DESTINATION, "fields": ".*"})
        assert "<td>&lt;b&gt;bob&lt;/b&gt;</td>" in body
        assert "<td>3</td>" in body

    def test_invalid_pattern_raises_destination_error(self):
        with pytest.raises(DestinationError, match="Invalid fields pattern"):
            HtmlEmailLayout(_plugin()).body(_message(), {**DESTINATION, "fields": "("})


# ===========================================================================
# PlainTextEmailLayout
# ===========================================================================

class TestPlainBody:
    def test_short_message_and_record(self):
        msg = _message()
        body = PlainTextEmailLayout(_plugin()).body(msg, DESTINATION)
        assert body == "upstream timed out\n\n" + str(msg)

    def test_full_message_included(self):
        msg = _message(full_message="Traceback: boom")
        body = PlainTextEmailLayout(_plugin()).body(msg, DESTINATION)
        assert body.startswith("upstream timed out\n\nTraceback: boom\n\n")
        assert "LogMessage(" in body

    def test_not_escaped(self):
        msg = _message(short_message="a < b")
        body = PlainTextEmailLayout(_plugin()).body(msg, DESTINATION)
        assert body.startswith("a < b")


# ===========================================================================
# render_email / create_layout
# ===========================================================================

class TestRenderEmail:
    def test_html_content_type(self):
        rendered = render_email(HtmlEmailLayout(_plugin()), _message(), DESTINATION)
        assert isinstance(rendered, RenderedEmail)
        assert rendered.content_type == CONTENT_TYPE_HTML
        assert rendered.subject == "Disk full"

    def test_plain_content_type(self):
        rendered = render_email(PlainTextEmailLayout(_plugin()), _message(), DESTINATION)
        assert rendered.content_type == CONTENT_TYPE_PLAIN


class TestCreateLayout:
    def test_html(self):
        assert isinstance(create_layout("html", _plugin()), HtmlEmailLayout)

    def test_plain_case_insensitive(self):
        assert isinstance(create_layout("PLAIN", _plugin()), PlainTextEmailLayout)

    def test_unknown_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown email layout"):
            create_layout("pdf", _plugin())

    def test_timezone_passed_to_html_layout(self):
        tz = timezone(timedelta(hours=-5), "EST")
        layout = create_layout("html", _plugin(), tz)
        assert "2023-11-14T17:13:20.123 EST" in layout.body(_message(), DESTINATION)


class TestResolveTimezone:
    @pytest.mark.parametrize("name", ["UTC", "utc"])
    def test_utc(self, name):
        assert resolve_timezone(name) is timezone.utc

    def test_unknown_zone(self):
        with pytest.raises(ConfigurationError, match="Unknown display timezone"):
            resolve_timezone("Not/AZone")
