import pytest

from builders import AttrDef, build_pmd
from libpix.descriptor import decode_descriptor, read_descriptor
from libpix.errors import CorruptDescriptor, PixIoError, UnsupportedVersion

CAB_MAT = """material : "eut2.dif.spec" {
    texture : "/vehicle/truck/textures/cab_paint.tobj"
    texture_name : "texture_base"
    diffuse : { 1.0 , 0.5 , 0.25 }
}
"""

GLASS_MAT = """effect : "eut2.glass" {
    texture : "texture_base" {
        source : "glass.tobj"
    }
}
"""


def _decode(root, data, directory="/vehicle/truck"):
    return decode_descriptor(data, f"{directory}/cab.pmd", root.fs, directory)


def test_looks_and_aliases_come_from_first_look(root):
    root.write("/vehicle/truck/cab.mat", CAB_MAT)
    root.write("/vehicle/truck/glass.mat", GLASS_MAT)
    root.write("/vehicle/truck/cab_red.mat", CAB_MAT.replace("cab_paint", "cab_red"))
    data = build_pmd(looks=[
        ("default", ["cab.mat", "glass.mat"]),
        ("red", ["cab_red.mat", "glass.mat"]),
    ])
    desc = _decode(root, data)

    assert desc.material_count == 2
    assert [look.name for look in desc.looks] == ["default", "red"]
    assert desc.aliases.get(0) == "mat_0000_cab_paint"
    assert desc.aliases.get(1) == "mat_0001_glass"
    # The second look shares the first look's aliases, even where its own
    # texture differs.
    red = desc.looks[1].materials[0]
    assert red.textures[0].path == "/vehicle/truck/textures/cab_red.tobj"
    assert red.alias == "mat_0000_cab_paint"
    assert red.aliases is desc.looks[0].materials[0].aliases


def test_material_paths_resolve_against_model_directory(root):
    root.write("/vehicle/truck/parts/cab.mat", CAB_MAT)
    root.write("/material/shared.mat", GLASS_MAT)
    data = build_pmd(looks=[("default", ["parts/cab.mat", "/material/shared.mat"])])
    desc = _decode(root, data)
    cab, shared = desc.looks[0].materials
    assert cab.path == "/vehicle/truck/parts/cab.mat"
    assert shared.path == "/material/shared.mat"
    assert shared.textures[0].path == "/material/glass.tobj"


def test_missing_material_is_not_fatal(root, caplog):
    data = build_pmd(looks=[("default", ["nowhere.mat"])])
    with caplog.at_level("WARNING", logger="libpix.material"):
        desc = _decode(root, data)
    assert "Cannot open material file" in caplog.text
    material = desc.looks[0].materials[0]
    assert material.effect == ""
    assert material.alias == "mat_0000"


def test_variant_values_are_strided_per_variant(root):
    data = build_pmd(
        variants=["default", "chrome", "paint"],
        part_attribs=[
            [AttrDef("visible", offset=0), AttrDef("lod", offset=4)],
            [AttrDef("visible", offset=8)],
        ],
        values=[[1, 0, 1], [0, 2, 1], [1, 3, 0]],
    )
    desc = _decode(root, data)
    assert desc.part_count == 2
    assert [v.name for v in desc.variants] == ["default", "chrome", "paint"]

    chrome = desc.variants[1]
    assert [vp.part_index for vp in chrome.parts] == [0, 1]
    assert chrome[0]["visible"].value == 0
    assert chrome[0]["lod"].value == 2
    assert chrome[1][0].value == 1
    assert chrome[0][0].format_name == "INT"
    assert desc.variants[2][1]["visible"].value == 0
    with pytest.raises(KeyError):
        chrome[1]["lod"]


def test_unknown_attribute_type_is_skipped(root, caplog):
    data = build_pmd(
        variants=["default"],
        part_attribs=[[AttrDef("visible", offset=0), AttrDef("weird", type=3, offset=4)]],
        values=[[1, 7]],
    )
    with caplog.at_level("WARNING", logger="libpix.descriptor"):
        desc = _decode(root, data)
    attrs = desc.variants[0][0].attributes
    assert [a.name for a in attrs] == ["visible"]
    assert "Invalid attribute type <3>" in caplog.text


def test_version_mismatch(root):
    data = build_pmd(version=5)
    with pytest.raises(UnsupportedVersion) as e:
        _decode(root, data)
    assert e.value.actual == 5
    assert e.value.expected == (4,)
    assert "descriptor" in str(e.value)


def test_truncated_header_is_corrupt(root):
    with pytest.raises(CorruptDescriptor):
        _decode(root, build_pmd()[:20])


def test_material_offset_out_of_range_is_corrupt(root):
    data = bytearray(build_pmd(looks=[("default", ["cab.mat"])]))
    # material_offset is header word 14
    table = int.from_bytes(data[14 * 4 : 15 * 4], "little")
    data[table : table + 4] = (len(data) + 64).to_bytes(4, "little")
    with pytest.raises(CorruptDescriptor):
        _decode(root, bytes(data))


def test_read_descriptor_missing_file(root):
    with pytest.raises(PixIoError) as e:
        read_descriptor(root.fs, "/vehicle/none", "/vehicle")
    assert e.value.path == "/vehicle/none.pmd"
