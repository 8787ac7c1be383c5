import json

import pytest
from pydantic import ValidationError

from drawer_client.protocol import Circle, DrawingObject, Line, Point, Rectangle, scene_storage_key
from drawer_client.protocol.messages import PollRequest, PollResponse
from drawer_client.client.transport import Clear, Upsert, parse_push_message


def test_poll_request_uses_camel_case():
    req = PollRequest(scene_id="XVlBzg", authenticator="secret", after_timestamp=5)
    assert json.loads(req.model_dump_json(by_alias=True)) == {
        "sceneId": "XVlBzg",
        "authenticator": "secret",
        "afterTimestamp": 5,
    }


def test_poll_response_one_of_variants():
    resp = PollResponse.model_validate_json(json.dumps({
        "drawings": [
            {"line": {"from": {"x": 0, "y": 0}, "to": {"x": 1, "y": 1}}},
            {"rectangle": {"lowerLeft": {"x": -0.5, "y": -0.5}, "upperRight": {"x": 0.5, "y": 0.5}}},
            {"circle": {"center": {"x": 0.25}, "radius": 0.1}},
        ],
        "lastTimestamp": "17",  # int64 as a JSON string
    }))
    assert resp.last_timestamp == 17
    assert [d.primitive() for d in resp.drawings] == [
        Line(from_=Point(x=0, y=0), to=Point(x=1, y=1)),
        Rectangle(lower_left=Point(x=-0.5, y=-0.5), upper_right=Point(x=0.5, y=0.5)),
        Circle(center=Point(x=0.25, y=0.0), radius=0.1),
    ]


def test_poll_response_defaults_when_fields_omitted():
    resp = PollResponse.model_validate_json("{}")
    assert resp.drawings == []
    assert resp.last_timestamp == 0


def test_drawing_unknown_variant_has_no_primitive():
    resp = PollResponse.model_validate({"drawings": [{"polygon": {"points": []}}]})
    assert resp.drawings[0].primitive() is None


def test_drawing_with_two_variants_is_rejected():
    with pytest.raises(ValidationError):
        PollResponse.model_validate({
            "drawings": [{
                "line": {"from": {}, "to": {}},
                "circle": {"center": {}, "radius": 1},
            }],
        })


def test_drawing_object_snapshot_form():
    obj = DrawingObject(id="a", primitive=Line(from_=Point(x=0, y=0), to=Point(x=1, y=0)))
    dumped = obj.model_dump(mode="json", by_alias=True)
    assert dumped == {
        "id": "a",
        "primitive": {"kind": "line", "from": {"x": 0.0, "y": 0.0}, "to": {"x": 1.0, "y": 0.0}},
    }
    assert DrawingObject.model_validate(dumped) == obj


def test_scene_storage_key():
    assert scene_storage_key("XVlBzg") == "scene:XVlBzg"


@pytest.mark.parametrize("frame", [
    '{"type":"rectangle","id":"r"}',  # unknown type
    '{"type":"line","id":"a"}',  # missing content
    'not json',
    '[1, 2, 3]',
    '{"type": ["line"]}',
])
def test_push_frames_ignored(frame):
    assert parse_push_message(frame) is None


def test_push_clear_frame():
    assert parse_push_message('{"type":"clear"}') == Clear()


def test_push_line_frame_with_integer_id():
    frame = json.dumps({
        "id": 42,
        "type": "line",
        "method": "set",
        "content": {"begin": {"x": 0, "y": 0}, "end": {"x": 1, "y": 0}},
    }).encode()
    assert parse_push_message(frame) == Upsert(
        id="42",
        primitive=Line(from_=Point(x=0, y=0), to=Point(x=1, y=0)),
    )
