"""Unit tests for content_combiner_function/models.py."""

import pytest
import json

from content_combiner_function.errors import MalformedInputError
from content_combiner_function.models import (
    Annotation,
    AnnotationsMessage,
    CombinedModel,
    ContentMessage,
    ContentModel,
    IndustryClassification,
    Thing,
)
from fixtures.messages import (
    CONTENT_UUID,
    CONTENT_URI,
    LAST_MODIFIED,
    create_annotations_message,
    create_content_message,
    create_thing,
)


class TestContentModel:
    """Tests for ContentModel accessors."""

    def test_reads_typed_fields(self):
        """Test uuid, type and lastModified are read from the mapping."""
        content = ContentModel({"uuid": "abc", "type": "Article", "lastModified": LAST_MODIFIED})
        assert content.get_uuid() == "abc"
        assert content.get_type() == "Article"
        assert content.get_last_modified() == LAST_MODIFIED

    def test_missing_fields_read_empty(self):
        """Test absent keys read as empty strings."""
        content = ContentModel({})
        assert content.get_uuid() == ""
        assert content.get_type() == ""
        assert content.get_last_modified() == ""

    def test_non_string_uuid_reads_empty(self):
        """Test a non-string uuid is treated as absent."""
        assert ContentModel({"uuid": 12}).get_uuid() == ""

    @pytest.mark.parametrize("value,expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("TRUE", True),
        ("false", False),
        (None, False),
        (1, False),
    ])
    def test_is_deleted(self, value, expected):
        """Test deleted flag accepts booleans and the string 'true'."""
        assert ContentModel({"deleted": value}).is_deleted() is expected

    def test_is_deleted_absent(self):
        """Test missing deleted flag means not deleted."""
        assert ContentModel({"uuid": "abc"}).is_deleted() is False


class TestThing:
    """Tests for Thing serialization."""

    def test_omits_empty_fields(self):
        """Test only populated fields are serialized."""
        thing = Thing(id="http://base-url/1", predicate="http://base-url/about")
        assert thing.to_dict() == {"id": "http://base-url/1", "predicate": "http://base-url/about"}

    def test_uses_wire_names(self):
        """Test fields serialize with their wire aliases."""
        thing = Thing.model_validate({
            "id": "x",
            "prefLabel": "Barclays",
            "apiUrl": "http://api/x",
            "directType": "http://base-url/company/PublicCompany",
            "leiCode": "G5GSEF7VJP5I7OUK5573",
            "FIGI": "BBG000C04D57",
            "isDeprecated": True,
        })
        data = thing.to_dict()
        assert data["prefLabel"] == "Barclays"
        assert data["apiUrl"] == "http://api/x"
        assert data["directType"] == "http://base-url/company/PublicCompany"
        assert data["leiCode"] == "G5GSEF7VJP5I7OUK5573"
        assert data["FIGI"] == "BBG000C04D57"
        assert data["isDeprecated"] is True

    def test_naics_keeps_zero_values(self):
        """Test industry classifications are serialized in full."""
        thing = Thing(id="x", naics=[IndustryClassification(identifier="522110")])
        assert thing.to_dict()["NAICS"] == [{"identifier": "522110", "prefLabel": "", "rank": 0}]

    def test_null_fields_read_as_defaults(self):
        """Test explicit nulls from the API fall back to empty values."""
        thing = Thing.model_validate({
            "id": "x",
            "types": None,
            "prefLabel": None,
            "NAICS": None,
            "isDeprecated": None,
        })
        assert thing.types == []
        assert thing.pref_label == ""
        assert thing.naics == []
        assert thing.is_deprecated is False
        assert thing.to_dict() == {"id": "x"}

    def test_null_classification_fields(self):
        """Test a classification with null label and rank keeps its identifier."""
        classification = IndustryClassification.model_validate({"identifier": "522110", "prefLabel": None, "rank": None})
        assert classification.pref_label == ""
        assert classification.rank == 0

    def test_annotation_wraps_thing(self):
        """Test annotation serializes as a thing envelope."""
        annotation = Annotation(thing=Thing(id="x"))
        assert annotation.to_dict() == {"thing": {"id": "x"}}


class TestContentMessage:
    """Tests for ContentMessage parsing."""

    def test_parse(self):
        """Test a content event is parsed from JSON."""
        msg = ContentMessage.parse(json.dumps(create_content_message()))
        assert msg.content_uri == CONTENT_URI
        assert msg.last_modified == LAST_MODIFIED
        assert msg.content.get_uuid() == CONTENT_UUID
        assert msg.content.get_type() == "Article"

    def test_null_payload_reads_empty(self):
        """Test a null payload gives empty content."""
        msg = ContentMessage.parse(json.dumps({"contentUri": CONTENT_URI, "payload": None}))
        assert msg.content == {}
        assert msg.content.get_uuid() == ""

    def test_invalid_json_raises(self):
        """Test malformed JSON raises MalformedInputError."""
        with pytest.raises(MalformedInputError):
            ContentMessage.parse("{not json")

    def test_null_string_fields_read_empty(self):
        """Test null contentUri and lastModified read as empty strings."""
        msg = ContentMessage.parse(json.dumps({"contentUri": None, "payload": {"uuid": CONTENT_UUID}, "lastModified": None}))
        assert msg.content_uri == ""
        assert msg.last_modified == ""
        assert msg.content.get_uuid() == CONTENT_UUID

    def test_wrong_payload_type_raises(self):
        """Test a non-object payload raises MalformedInputError."""
        with pytest.raises(MalformedInputError):
            ContentMessage.parse(json.dumps({"contentUri": CONTENT_URI, "payload": "text"}))


class TestAnnotationsMessage:
    """Tests for AnnotationsMessage parsing."""

    def test_parse(self):
        """Test annotations and referenced UUID are parsed."""
        msg = AnnotationsMessage.parse(json.dumps(create_annotations_message()))
        assert msg.get_content_uuid() == CONTENT_UUID
        assert msg.payload.annotations[0].thing.pref_label == "Barclays"

    def test_null_payload(self):
        """Test null payload references no content."""
        msg = AnnotationsMessage.parse(json.dumps({"contentUri": "x", "payload": None}))
        assert msg.get_content_uuid() == ""

    def test_null_annotations_list(self):
        """Test a null annotations list reads as empty and keeps the referenced UUID."""
        body = {"contentUri": None, "payload": {"annotations": None, "uuid": CONTENT_UUID}, "lastModified": None}
        msg = AnnotationsMessage.parse(json.dumps(body))
        assert msg.payload.annotations == []
        assert msg.get_content_uuid() == CONTENT_UUID
        assert msg.content_uri == ""
        assert msg.last_modified == ""

    def test_null_thing(self):
        """Test an annotation with a null thing reads as an empty concept."""
        body = {"payload": {"annotations": [{"thing": None}], "uuid": CONTENT_UUID}}
        msg = AnnotationsMessage.parse(json.dumps(body))
        assert msg.payload.annotations[0].thing == Thing()

    def test_invalid_json_raises(self):
        """Test malformed JSON raises MalformedInputError."""
        with pytest.raises(MalformedInputError):
            AnnotationsMessage.parse("[1, 2")


class TestCombinedModel:
    """Tests for CombinedModel serialization."""

    def test_field_order(self):
        """Test JSON keys follow the outbound contract order."""
        body = json.loads(CombinedModel(uuid="x").to_json())
        assert list(body.keys()) == [
            "uuid", "content", "internalContent", "metadata", "contentUri", "lastModified", "deleted"
        ]

    def test_absent_views_serialize_null(self):
        """Test missing content, internal content and metadata are null."""
        body = json.loads(CombinedModel(uuid="x", deleted=True).to_json())
        assert body["content"] is None
        assert body["internalContent"] is None
        assert body["metadata"] is None
        assert body["deleted"] is True

    def test_metadata_serializes_things(self):
        """Test metadata is an array of thing envelopes with empty fields omitted."""
        model = CombinedModel(uuid="x", metadata=[Annotation(thing=Thing(id="c1", predicate="about"))])
        body = json.loads(model.to_json())
        assert body["metadata"] == [{"thing": {"id": "c1", "predicate": "about"}}]

    def test_round_trip(self):
        """Test serializing then parsing keeps identity fields and metadata."""
        things = [Thing.model_validate(create_thing()), Thing(id="http://base-url/2", predicate="mentions")]
        expected = CombinedModel(
            uuid=CONTENT_UUID,
            content=ContentModel({"uuid": CONTENT_UUID, "type": "Article"}),
            metadata=[Annotation(thing=t) for t in things],
            content_uri=CONTENT_URI,
            last_modified=LAST_MODIFIED,
        )

        restored = CombinedModel.from_json(expected.to_json())

        assert restored.uuid == expected.uuid
        assert restored.deleted == expected.deleted
        assert restored.last_modified == expected.last_modified
        assert restored.content_uri == expected.content_uri
        assert {a.thing.id for a in restored.metadata} == {a.thing.id for a in expected.metadata}
        assert restored.content == expected.content

    def test_unicode_kept(self):
        """Test non-ASCII text is written as-is."""
        model = CombinedModel(uuid="x", content=ContentModel({"title": "Gençlerbirliği"}))
        assert "Gençlerbirliği" in model.to_json()
