import pytest

from builders import BoneSpec, PartSpec, PieceSpec, build_pmd, build_pmg_v13, build_pmg_v14, write_model
from libpix import CorruptGeometry, Model, PixIoError, UnsupportedVersion
from libpix.writer import save_to_mid_format

TRI = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)]


def _two_piece_pmg(builder=build_pmg_v14, **kw):
    return builder(
        bones=[BoneSpec("root")],
        parts=[PartSpec("a", piece_index=0, piece_count=1), PartSpec("b", piece_index=1, piece_count=1)],
        pieces=[
            PieceSpec(TRI, triangles=[(0, 1, 2)], **kw),
            PieceSpec(TRI + TRI, triangles=[(0, 1, 2), (3, 4, 5)]),
        ],
    )


def _pmd():
    return build_pmd(part_attribs=[[], []])


class FakeCollaborator:
    def __init__(self, ok=True, error=None):
        self.ok = ok
        self.error = error
        self.loaded_from = None
        self.saved = []

    def load(self, base_path):
        self.loaded_from = base_path
        if self.error is not None:
            raise self.error
        return self.ok

    def save(self, export_fs, file_path):
        self.saved.append(file_path)
        with export_fs.open_write(file_path + ".pic") as f:
            f.write("collision\n")
        return True


def test_counters_are_sums_over_pieces(root):
    write_model(root, "/m/two", _two_piece_pmg(), _pmd())
    model = Model(root.fs)
    assert model.load("/m/two")
    assert model.loaded
    assert model.vertex_count == 9
    assert model.triangle_count == 3
    assert model.skin_vertex_count == 0
    assert model.geometry_version == 0x14
    assert model.file_name == "two" and model.directory == "/m"


def test_skin_vertex_count_only_counts_skinned_pieces(root):
    pmg = _two_piece_pmg(builder=build_pmg_v13, influences=[[(0, 255)]] * 3, bone_count=1)
    write_model(root, "/m/v13", pmg, _pmd())
    model = Model(root.fs)
    model.load_or_raise("/m/v13")
    assert model.geometry_version == 0x13
    assert model.skin_vertex_count == 3
    assert model.vertex_count == 9


def test_reload_resets_previous_state(root):
    write_model(root, "/m/two", _two_piece_pmg(), _pmd())
    write_model(root, "/m/empty", build_pmg_v14(), build_pmd())
    model = Model(root.fs)
    model.load_or_raise("/m/two")
    model.load_or_raise("/m/empty")
    assert model.file_path == "/m/empty"
    assert model.pieces == [] and model.parts == [] and model.bones == []
    assert model.vertex_count == 0 and model.triangle_count == 0


def test_destroy(root):
    write_model(root, "/m/two", _two_piece_pmg(), _pmd())
    model = Model(root.fs)
    model.load_or_raise("/m/two")
    model.destroy()
    assert not model.loaded
    assert model.file_path == ""
    assert model.vertex_count == 0


def test_part_count_mismatch(root):
    write_model(root, "/m/bad", _two_piece_pmg(), build_pmd(part_attribs=[[]]))
    with pytest.raises(CorruptGeometry, match="declares 1 parts but geometry has 2"):
        Model(root.fs).load_or_raise("/m/bad")


def test_missing_geometry(root, caplog):
    root.write("/m/lonely.pmd", _pmd())
    model = Model(root.fs)
    with pytest.raises(PixIoError):
        model.load_or_raise("/m/lonely")
    with caplog.at_level("ERROR", logger="libpix.asset"):
        assert not model.load("/m/lonely")
    assert "Failed to load model" in caplog.text
    assert not model.loaded


def test_unsupported_geometry_version(root):
    pmg = bytearray(build_pmg_v14())
    pmg[0] = 0x12
    write_model(root, "/m/old", bytes(pmg), build_pmd())
    with pytest.raises(UnsupportedVersion, match="have: 0x12, expected: 0x13 or 0x14"):
        Model(root.fs).load_or_raise("/m/old")


def test_lookups(root):
    write_model(root, "/m/two", _two_piece_pmg(), _pmd())
    model = Model(root.fs)
    model.load_or_raise("/m/two")
    assert model.bone(0).name == "root"
    assert model.bone_by_name("root") is model.bones[0]
    assert model.bone_by_name("nope") is None
    with pytest.raises(IndexError):
        model.bone(1)
    assert model.part_of(1).name == "b"
    assert model.part_of(2) is None


def test_collaborators_are_loaded_when_present(root, export_root):
    write_model(root, "/m/two", _two_piece_pmg(), _pmd())
    root.write("/m/two.pmc", b"\0")
    collision = FakeCollaborator()
    prefab = FakeCollaborator()
    model = Model(root.fs, collision_factory=lambda: collision, prefab_factory=lambda: prefab)
    model.load_or_raise("/m/two")
    assert model.collision is collision
    assert collision.loaded_from == "/m/two"
    # no .ppd next to the model
    assert model.prefab is None and prefab.loaded_from is None

    result = save_to_mid_format(model, export_root.fs)
    assert result["pic"] is True and result["pip"] is False
    assert collision.saved == ["/m/two"]


@pytest.mark.parametrize("what, ext, key", [
    ("collision", ".pmc", "pic"),
    ("prefab", ".ppd", "pip"),
])
@pytest.mark.parametrize("make_failing", [
    lambda: FakeCollaborator(ok=False),
    lambda: FakeCollaborator(error=OSError("unreadable")),
])
def test_failed_collaborator_does_not_change_exports(root, make_root, what, ext, key, make_failing, caplog):
    write_model(root, "/m/two", _two_piece_pmg(), _pmd())
    plain = Model(root.fs)
    plain.load_or_raise("/m/two")
    plain_out = make_root("plain")
    save_to_mid_format(plain, plain_out.fs)

    failing = make_failing()
    root.write("/m/two" + ext, b"\0")
    model = Model(root.fs, **{f"{what}_factory": lambda: failing})
    with caplog.at_level("WARNING", logger="libpix.asset"):
        model.load_or_raise("/m/two")
    assert model.loaded
    assert failing.loaded_from == "/m/two"
    assert getattr(model, what) is None
    assert f"{what} could not be loaded" in caplog.text

    out = make_root(what)
    result = save_to_mid_format(model, out.fs)
    assert result[key] is False
    for container in (".pim", ".pit", ".pis"):
        expected = (plain_out.base / "m" / f"two{container}").read_bytes()
        assert (out.base / "m" / f"two{container}").read_bytes() == expected
