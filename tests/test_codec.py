from datetime import date

import pytest

from notion_task_sync.models.field_mapping import EnumToBooleanMapping
from notion_task_sync.models.schema import OptionDefinition, PropertyType
from notion_task_sync.services.codec import TaskCodec, is_completed, plain_title

ENUM_MAPPING = EnumToBooleanMapping(
    external_property_id="st",
    source_type=PropertyType.STATUS,
    property_name="Status",
    true_option=OptionDefinition(id="A", name="Done"),
    false_option=OptionDefinition(id="B", name="Todo"),
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ({"id": "st", "type": "status", "status": {"id": "A", "name": "Done"}}, True),
        ({"id": "st", "type": "status", "status": {"id": "B", "name": "Todo"}}, False),
        ({"id": "st", "type": "status", "status": {"id": "C", "name": "Doing"}}, False),
        ({"id": "st", "type": "status", "status": None}, False),
        (None, False),
    ],
)
def test_enum_to_boolean_decode(raw, expected):
    assert TaskCodec.decode_value(raw, ENUM_MAPPING) is expected


def test_decode_record_keeps_raw_shapes(make_page, enum_mappings):
    page = make_page("p1", title="Buy milk", status="A", category="c1", due="2026-10-20")
    record = TaskCodec().decode_record(page, enum_mappings)

    assert record.id == "p1"
    assert record.title.value == page["properties"]["Name"]["title"]
    assert record.completed.value is True
    assert record.category.value == {"id": "c1", "name": "Work"}
    assert record.due_date.value == {"start": "2026-10-20", "end": None}
    assert record.priority.value is None
    assert plain_title(record) == "Buy milk"
    assert is_completed(record)


def test_checkbox_passthrough(make_page, checkbox_mappings):
    codec = TaskCodec()
    assert codec.decode_record(make_page("p1", done=True), checkbox_mappings).completed.value is True
    assert codec.decode_record(make_page("p2", done=False), checkbox_mappings).completed.value is False


def test_empty_title_is_kept_for_display_fallback(make_page, checkbox_mappings):
    record = TaskCodec().decode_record(make_page("p1", title=None), checkbox_mappings)
    assert record.title.value == []
    assert plain_title(record) == "Untitled"


def test_missing_optional_property_is_no_value(make_page, enum_mappings):
    record = TaskCodec().decode_record(make_page("p1", drop=["Due"]), enum_mappings)
    assert record is not None
    assert record.due_date is None


def test_batch_drops_records_without_required_properties(make_page, enum_mappings):
    pages = [
        make_page("p1", status="A"),
        make_page("p2", drop=["Status"]),
        make_page("p3", drop=["Name"]),
        make_page("p4", status="B"),
    ]
    result = TaskCodec().decode_batch(pages, enum_mappings)
    assert [record.id for record in result.records] == ["p1", "p4"]
    assert result.skipped == 2


def test_encode_enum_completed(enum_mappings):
    codec = TaskCodec()
    assert codec.encode_changes(enum_mappings, {"completed": True}) == {"st": {"status": {"id": "A"}}}
    assert codec.encode_changes(enum_mappings, {"completed": False}) == {"st": {"status": {"id": "B"}}}


def test_encode_by_source_type(enum_mappings, checkbox_mappings):
    codec = TaskCodec()
    payload = codec.encode_changes(
        enum_mappings,
        {"title": "Write report", "due_date": date(2026, 10, 18), "category": "Work", "priority": None},
    )
    assert payload == {
        "title": {"title": [{"type": "text", "text": {"content": "Write report"}}]},
        "due": {"date": {"start": "2026-10-18"}},
        "cat": {"select": {"name": "Work"}},
        "pri": {"select": None},
    }
    assert codec.encode_changes(checkbox_mappings, {"completed": 1}) == {"chk": {"checkbox": True}}


def test_encode_unmapped_field_fails(checkbox_mappings):
    with pytest.raises(ValueError):
        TaskCodec().encode_changes(checkbox_mappings, {"due_date": "2026-10-18"})


def test_decoded_title_can_be_written_back(make_page, enum_mappings):
    codec = TaskCodec()
    record = codec.decode_record(make_page("p1", title="Buy milk"), enum_mappings)

    properties = codec.encode_changes(enum_mappings, {"title": record.title.value})

    assert properties == {"title": {"title": [{"type": "text", "text": {"content": "Buy milk"}}]}}
