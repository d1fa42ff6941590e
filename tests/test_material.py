import pytest

from libpix.material import Material
from libpix.model import AliasTable

LEGACY = """// cab paint
material : "eut2.dif.spec.rfx" {
    texture[0] : "cab.tobj"
    texture_name[0] : "texture_base"
    texture[1] : "/material/environment/generic_reflection.tobj"
    texture_name[1] : "texture_reflection"
    diffuse : { 1.0 , 1.0 , 1.0 }
    shininess : 60.0
    substance : "metal"
}
"""

MODERN = """effect : "eut2.dif.a_test" {
    aux[0] : { 0.5 , 0.25 }
    texture : "texture_base" {
        source : "../shared/decal.tobj"
    }
}
"""


def test_legacy_layout(root):
    root.write("/vehicle/truck/cab.mat", LEGACY)
    mat = Material(slot=3)
    assert mat.load(root.fs, "/vehicle/truck/cab.mat")
    assert mat.effect == "eut2.dif.spec.rfx"
    assert [(t.name, t.path) for t in mat.textures] == [
        ("texture_base", "/vehicle/truck/cab.tobj"),
        ("texture_reflection", "/material/environment/generic_reflection.tobj"),
    ]
    assert [(a.name, a.value, a.format_name) for a in mat.attributes] == [
        ("diffuse", (1.0, 1.0, 1.0), "FLOAT3"),
        ("shininess", (60.0,), "FLOAT"),
        ("substance", "metal", "STRING"),
    ]


def test_modern_layout(root):
    root.write("/vehicle/truck/decal.mat", MODERN)
    mat = Material()
    assert mat.load(root.fs, "/vehicle/truck/decal.mat")
    assert mat.effect == "eut2.dif.a_test"
    assert mat.textures[0].name == "texture_base"
    assert mat.textures[0].texture() == "/vehicle/shared/decal.tobj"
    assert mat.attributes[0].name == "aux[0]"
    assert mat.attributes[0].format_name == "FLOAT2"


def test_unparseable_material_is_reported(root, caplog):
    root.write("/bad.mat", 'material : "x" { diffuse : { 1.0 , oops } }')
    with caplog.at_level("WARNING", logger="libpix.material"):
        assert not Material().load(root.fs, "/bad.mat")
    assert "Cannot parse material file" in caplog.text


def test_alias_follows_shared_table():
    table = AliasTable()
    a = Material(slot=1, aliases=table)
    b = Material(slot=1, aliases=table)
    assert a.alias == "mat_0001"
    table.set(1, "mat_0001_paint")
    assert a.alias == b.alias == "mat_0001_paint"


def test_declaration_and_definition(root):
    root.write("/m/cab.mat", LEGACY)
    mat = Material(slot=0)
    mat.load(root.fs, "/m/cab.mat")
    assert mat.to_declaration() == (
        "Material {\n"
        "\tAlias: \"mat_0000\"\n"
        "\tEffect: \"eut2.dif.spec.rfx\"\n"
        "}\n"
    )
    definition = mat.to_definition()
    assert "\tAttributeCount: 3\n" in definition
    assert "\t\tFormat: FLOAT3\n\t\tTag: \"diffuse\"\n\t\tValue: ( &3f800000  &3f800000  &3f800000 )\n" in definition
    assert "\t\tValue: \"metal\"\n" in definition
    assert "\tTextureCount: 2\n" in definition
    assert "\t\tTag: \"texture[1]:texture_reflection\"\n" in definition
    assert "\t\tValue: \"/m/cab.tobj\"\n" in definition


@pytest.mark.parametrize("value", ["{ 1e39 , 1 }", "-1e39", "{ inf , 0 }", "nan"])
def test_values_outside_float32_are_rejected(root, caplog, value):
    root.write("/m/hot.mat", 'material : "eut2.dif" {\n    fresnel : %s\n}\n' % value)
    mat = Material()
    with caplog.at_level("WARNING", logger="libpix.material"):
        assert not mat.load(root.fs, "/m/hot.mat")
    assert "does not fit a 32-bit float" in caplog.text
    assert mat.attributes == []


def test_failed_parse_leaves_nothing_behind(root):
    root.write("/m/half.mat", MODERN.replace("aux[0] : { 0.5 , 0.25 }", "aux[0] : { 0.5 , 0.25 }\n    broken : {"))
    mat = Material(slot=2)
    assert not mat.load(root.fs, "/m/half.mat")
    assert mat.effect == ""
    assert mat.textures == [] and mat.attributes == []
    assert mat.alias == "mat_0002"


def test_reload_replaces_previous_contents(root):
    root.write("/m/cab.mat", LEGACY)
    root.write("/m/decal.mat", MODERN)
    mat = Material()
    mat.load(root.fs, "/m/cab.mat")
    mat.load(root.fs, "/m/decal.mat")
    assert mat.effect == "eut2.dif.a_test"
    assert [t.name for t in mat.textures] == ["texture_base"]
