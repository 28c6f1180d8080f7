from __future__ import annotations

import pytest

from pyinode.models.manufacturer import DeviceFamily, DeviceModel
from pyinode.state.diff import StateDiff, compare
from pyinode.state.layout import HEADER_SIZE, LAYOUTS, i16, layout_for, u16, u32
from pyinode.state.render import allocate, render


class TestCompare:
    def test_new_keys_are_changes(self) -> None:
        assert compare({}, {"rssi": -60}) == {"rssi": -60}

    def test_equal_values_are_not_changes(self) -> None:
        assert compare({"rssi": -60, "local_name": "x"}, {"rssi": -60}) == {}

    def test_type_change_is_a_change(self) -> None:
        assert compare({"temperature": 20}, {"temperature": 20.0}) == {"temperature": 20.0}

    def test_none_is_a_value(self) -> None:
        assert compare({"humidity": 40.0}, {"humidity": None}) == {"humidity": None}

    def test_composite_compared_on_incoming_keys(self) -> None:
        old = {"alarms": {"low_battery": True, "contact_change": True}}
        assert compare(old, {"alarms": {"low_battery": True}}) == {}
        assert compare(old, {"alarms": {"low_battery": False}}) == {"alarms": {"low_battery": False}}

    def test_composite_replacing_scalar(self) -> None:
        assert compare({"position": None}, {"position": {"x": 1}}) == {"position": {"x": 1}}

    def test_composite_change_is_copied(self) -> None:
        incoming = {"position": {"x": 1}}
        changes = compare({}, incoming)
        changes["position"]["x"] = 2
        assert incoming["position"]["x"] == 1


def test_state_diff_truthiness() -> None:
    assert not StateDiff()
    assert StateDiff(changes={"rssi": -1})
    assert StateDiff(model=DeviceModel.CARE_RELAY).model_changed


class TestLayouts:
    @pytest.mark.parametrize(
        ("family", "size"),
        [
            (DeviceFamily.CARE_RELAY, 34),
            (DeviceFamily.ENERGY_METER, 56),
            (DeviceFamily.CARE_SENSOR, 56),
        ],
    )
    def test_sizes(self, family: DeviceFamily, size: int) -> None:
        assert LAYOUTS[family].size == size

    def test_fields_do_not_overlap(self) -> None:
        for layout in LAYOUTS.values():
            covered: set[int] = set()
            for field in layout.fields:
                span = set(range(field.offset, field.offset + field.size))
                assert not covered & span, field.name
                covered |= span

    def test_header_fields_shared(self) -> None:
        for layout in LAYOUTS.values():
            assert layout.field("rssi").register == 12
            assert layout.field("alarms").offset + 2 == HEADER_SIZE

    def test_layout_for_unknown_model(self) -> None:
        with pytest.raises(KeyError):
            layout_for(DeviceModel.UNKNOWN)

    def test_encoders_clamp(self) -> None:
        assert u16(-5) == b"\x00\x00"
        assert u16(70_000) == b"\xff\xff"
        assert i16(-40_000) == b"\x80\x00"
        assert u32(-1) == b"\x00\x00\x00\x00"


class TestRender:
    def test_allocate_sets_identity_only(self) -> None:
        layout = layout_for(DeviceModel.CARE_RELAY)
        buffer = allocate(layout, "00:12:6F:AA:BB:01", DeviceModel.CARE_RELAY)

        assert len(buffer) == 34
        assert buffer[:6] == bytes.fromhex("00126FAABB01")
        assert buffer[22:24] == b"\x00\x8a"
        assert buffer[6:22] == bytes(16)
        assert buffer[24:] == bytes(10)

    def test_partial_render_touches_only_dependent_fields(self) -> None:
        layout = layout_for(DeviceModel.ENERGY_METER)
        buffer = bytearray(layout.size)

        written = render(buffer, layout, {"unit": 2, "total": 7, "average": 3}, {"unit"})

        # unit, total and average all depend on the unit
        assert written == 3
        assert buffer[36:40] == (7).to_bytes(4, "big")
        assert buffer[24:26] == b"\x00\x00"

    def test_full_render(self) -> None:
        layout = layout_for(DeviceModel.CARE_SENSOR_T)
        buffer = bytearray(layout.size)
        assert render(buffer, layout, {}) == len(layout.fields)
        assert buffer[34:36] == b"\x00\xff"
