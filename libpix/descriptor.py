"""libpix.descriptor

Decoder for the model descriptor (``.pmd``): material looks and per-part
variant attributes.

Attributes are stored as a table of tables. Every part has a link record
giving a ``[from, to)`` range into the global attribute-definition table;
each definition points at its value through an offset into a value block
that is repeated once per variant (``attribs_values_size`` bytes apart).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from .binary import BufferView
from .errors import CorruptDescriptor, PixIoError, UnsupportedVersion
from .fs import FileSystem
from .material import Material
from .model import AliasTable, Attribute, AttributeType, Look, Variant, VariantPart
from .token import TOKEN_SIZE, token_to_string

_log = logging.getLogger("libpix.descriptor")

SUPPORTED_DESCRIPTOR_VERSION = 0x04

# version, material_count, look_count, part_count, variant_count,
# part_attribs_count, attribs_count, attribs_values_size, material_block_size,
# look_offset, variant_offset, part_attribs_offset, attribs_offset,
# attribs_value_offset, material_offset, material_data_offset
PMD_HEADER = "<16I"
PMD_ATTRIB_LINK = "<ii"  # from, to
PMD_ATTRIB_DEF = "<8sii"  # name, type, offset
PMD_ATTRIB_DEF_SIZE = 16
PMD_ATTRIB_VALUE = "<i"


@dataclass
class PmdHeader:
    version: int
    material_count: int
    look_count: int
    part_count: int
    variant_count: int
    part_attribs_count: int
    attribs_count: int
    attribs_values_size: int
    material_block_size: int
    look_offset: int
    variant_offset: int
    part_attribs_offset: int
    attribs_offset: int
    attribs_value_offset: int
    material_offset: int
    material_data_offset: int


@dataclass
class DescriptorData:
    material_count: int
    part_count: int
    looks: List[Look] = field(default_factory=list)
    variants: List[Variant] = field(default_factory=list)
    aliases: AliasTable = field(default_factory=AliasTable)


def _texture_alias(slot: int, material: Material) -> str:
    if not material.textures:
        return f"mat_{slot:04d}"
    name = material.textures[0].texture()[:-5]
    cut = name.rfind("/")
    if cut != -1:
        name = name[cut + 1 :]
    return f"mat_{slot:04d}_{name}"


def _resolve_material_path(directory: str, material_path: str) -> str:
    if material_path.startswith("/"):
        return material_path
    return f"{directory}/{material_path}"


def _read_looks(b: BufferView, h: PmdHeader, fs: FileSystem, directory: str, aliases: AliasTable) -> List[Look]:
    looks: List[Look] = []
    for i in range(h.look_count):
        name = token_to_string(b.slice(h.look_offset + i * TOKEN_SIZE, TOKEN_SIZE, "look name"))
        look = Look(name=name)
        for j in range(h.material_count):
            ofs = b.scalar("<I", h.material_offset + (i * h.material_count + j) * 4, "material offset")
            material_path = b.cstring(ofs, "material path")
            material = Material(slot=j, aliases=aliases)
            material.load(fs, _resolve_material_path(directory, material_path))
            if i == 0:
                aliases.set(j, _texture_alias(j, material))
            look.materials.append(material)
        looks.append(look)
    return looks


def _read_variants(b: BufferView, h: PmdHeader) -> List[Variant]:
    variants: List[Variant] = []
    for i in range(h.variant_count):
        name = token_to_string(b.slice(h.variant_offset + i * TOKEN_SIZE, TOKEN_SIZE, "variant name"))
        variant = Variant(name=name)
        for j in range(h.part_count):
            vpart = VariantPart(part_index=j)
            attr_from, attr_to = b.unpack(PMD_ATTRIB_LINK, h.part_attribs_offset + j * 8, "attribute link")
            for k in range(attr_from, attr_to):
                raw_name, attr_type, value_ofs = b.unpack(
                    PMD_ATTRIB_DEF, h.attribs_offset + k * PMD_ATTRIB_DEF_SIZE, "attribute definition"
                )
                attr_name = token_to_string(raw_name)
                value_at = h.attribs_value_offset + value_ofs + i * h.attribs_values_size
                if attr_type == AttributeType.INT:
                    value = b.scalar(PMD_ATTRIB_VALUE, value_at, "attribute value")
                    vpart.attributes.append(Attribute(name=attr_name, type=AttributeType.INT, value=value))
                else:
                    _log.warning(
                        "Invalid attribute type <%d> of '%s' (variant '%s', part %d) in \"%s\"; skipped",
                        attr_type, attr_name, variant.name, j, b.path,
                    )
            variant.parts.append(vpart)
        variants.append(variant)
    return variants


def decode_descriptor(data: bytes, path: str, fs: FileSystem, directory: str) -> DescriptorData:
    b = BufferView(data, path=path, error=CorruptDescriptor)
    h = PmdHeader(*b.unpack(PMD_HEADER, 0, "header"))
    if h.version != SUPPORTED_DESCRIPTOR_VERSION:
        raise UnsupportedVersion(path, (SUPPORTED_DESCRIPTOR_VERSION,), h.version, what="descriptor file")

    aliases = AliasTable()
    looks = _read_looks(b, h, fs, directory, aliases)
    variants = _read_variants(b, h)
    _log.debug(
        "%s: %d looks, %d variants, %d materials, %d parts",
        path, len(looks), len(variants), h.material_count, h.part_count,
    )
    return DescriptorData(
        material_count=h.material_count,
        part_count=h.part_count,
        looks=looks,
        variants=variants,
        aliases=aliases,
    )


def read_descriptor(fs: FileSystem, base_path: str, directory: str) -> DescriptorData:
    path = base_path + ".pmd"
    try:
        data = fs.read(path)
    except OSError as e:
        raise PixIoError(path, f"Cannot open descriptor file! {e.strerror or e}") from e
    return decode_descriptor(data, path, fs, directory)
