"""libpix.material

Minimal reader for Prism3D text material descriptions (``.mat``).

Two layouts exist in the wild and both are accepted:

    material : "eut2.dif.spec" {           effect : "eut2.dif.spec" {
        texture : "cab.tobj"                   diffuse : { 1 , 1 , 1 }
        texture_name : "texture_base"          texture : "texture_base" {
        diffuse : { 1.0 , 1.0 , 1.0 }              source : "cab.tobj"
    }                                          }
                                           }

Only what the model containers need is kept: the effect name, the texture
list (resolved to virtual paths) and the plain attributes.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple, Union

from .textfmt import EOL, TAB, fmt_vec

if TYPE_CHECKING:
    from .fs import FileSystem
    from .model import AliasTable

_log = logging.getLogger("libpix.material")

_TOKEN_RE = re.compile(r'"[^"]*"|[{}:,]|[^\s{}:,"]+')
_INDEXED_KEY_RE = re.compile(r"^(?P<key>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<idx>\d+)\])?$")

# Attribute values are written back as float32 bit images.
FLOAT32_MAX = 3.4028234663852886e38


class MaterialSyntaxError(ValueError):
    pass


@dataclass
class MaterialTexture:
    name: str
    path: str

    def texture(self) -> str:
        return self.path


@dataclass
class MaterialAttribute:
    name: str
    value: Union[Tuple[float, ...], str]

    @property
    def format_name(self) -> str:
        if isinstance(self.value, str):
            return "STRING"
        n = len(self.value)
        return "FLOAT" if n == 1 else f"FLOAT{n}"


def _tokenize(text: str) -> List[str]:
    lines = []
    for line in text.splitlines():
        # comments never appear inside quoted values in practice
        for marker in ("#", "//"):
            cut = line.find(marker)
            if cut != -1 and line.count('"', 0, cut) % 2 == 0:
                line = line[:cut]
        lines.append(line)
    return _TOKEN_RE.findall("\n".join(lines))


def _checked(value: float) -> float:
    if not -FLOAT32_MAX <= value <= FLOAT32_MAX:
        raise MaterialSyntaxError(f"Value {value!r} does not fit a 32-bit float")
    return value


class _Parser:
    def __init__(self, tokens: List[str]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, expected: Optional[str] = None) -> str:
        tok = self.peek()
        if tok is None:
            raise MaterialSyntaxError("Unexpected end of material")
        if expected is not None and tok != expected:
            raise MaterialSyntaxError(f"Expected '{expected}', got '{tok}'")
        self.pos += 1
        return tok

    def block(self) -> List[Tuple[str, object]]:
        """Parse ``{ key : value ... }`` into an ordered list of entries."""
        self.take("{")
        entries: List[Tuple[str, object]] = []
        while self.peek() != "}":
            key = self.take()
            self.take(":")
            entries.append((key, self.value()))
        self.take("}")
        return entries

    def value(self) -> object:
        tok = self.peek()
        if tok == "{":
            return self.vector()
        tok = self.take()
        if tok.startswith('"'):
            text = tok[1:-1]
            if self.peek() == "{":
                return (text, self.block())
            return text
        try:
            number = float(tok)
        except ValueError:
            return tok
        return _checked(number)

    def vector(self) -> Tuple[float, ...]:
        self.take("{")
        out: List[float] = []
        while self.peek() != "}":
            tok = self.take()
            if tok == ",":
                continue
            out.append(_checked(float(tok)))
        self.take("}")
        return tuple(out)


class Material:
    def __init__(self, slot: int = 0, aliases: Optional["AliasTable"] = None):
        self.slot = slot
        self.aliases = aliases
        self.path = ""
        self._fallback_alias = f"mat_{slot:04d}"
        self.clear()

    def clear(self) -> None:
        self.effect = ""
        self.textures: List[MaterialTexture] = []
        self.attributes: List[MaterialAttribute] = []

    @property
    def alias(self) -> str:
        if self.aliases is not None:
            found = self.aliases.get(self.slot)
            if found is not None:
                return found
        return self._fallback_alias

    def load(self, fs: "FileSystem", path: str) -> bool:
        self.path = path
        self.clear()
        try:
            text = fs.read_text(path)
        except OSError as e:
            _log.warning("Cannot open material file: \"%s\"! %s", path, e)
            return False
        try:
            self._parse(text)
        except (MaterialSyntaxError, ValueError) as e:
            _log.warning("Cannot parse material file \"%s\": %s", path, e)
            self.clear()
            return False
        return True

    def _resolve(self, tex_path: str) -> str:
        if tex_path.startswith("/"):
            return tex_path
        return posixpath.normpath(posixpath.join(posixpath.dirname(self.path) or "/", tex_path))

    def _parse(self, text: str) -> None:
        p = _Parser(_tokenize(text))
        p.take()  # "material" / "effect"
        p.take(":")
        effect = p.take()
        if not effect.startswith('"'):
            raise MaterialSyntaxError(f"Expected effect name, got '{effect}'")
        self.effect = effect[1:-1]

        # Legacy layout pairs texture / texture_name entries by index, either
        # explicit (texture[1]) or by order of appearance.
        legacy_paths: Dict[int, str] = {}
        legacy_names: Dict[int, str] = {}
        for raw_key, value in p.block():
            m = _INDEXED_KEY_RE.match(raw_key)
            key = m.group("key") if m else raw_key
            explicit = int(m.group("idx")) if m and m.group("idx") else None
            if key == "texture":
                if isinstance(value, tuple) and len(value) == 2 and isinstance(value[1], list):
                    name, body = value
                    source = next((v for k, v in body if k == "source" and isinstance(v, str)), "")
                    self.textures.append(MaterialTexture(name=name, path=self._resolve(source)))
                elif isinstance(value, str):
                    legacy_paths[len(legacy_paths) if explicit is None else explicit] = value
            elif key == "texture_name":
                if isinstance(value, str):
                    legacy_names[len(legacy_names) if explicit is None else explicit] = value
            elif isinstance(value, str):
                self.attributes.append(MaterialAttribute(raw_key, value))
            elif isinstance(value, float):
                self.attributes.append(MaterialAttribute(raw_key, (value,)))
            elif isinstance(value, tuple) and value and all(isinstance(v, float) for v in value):
                self.attributes.append(MaterialAttribute(raw_key, value))

        for idx in sorted(legacy_paths):
            name = legacy_names.get(idx, "texture_base")
            self.textures.append(MaterialTexture(name=name, path=self._resolve(legacy_paths[idx])))

    # -----------------------------
    # Text containers
    # -----------------------------

    def to_declaration(self) -> str:
        return (
            "Material {" + EOL
            + TAB + f"Alias: \"{self.alias}\"" + EOL
            + TAB + f"Effect: \"{self.effect}\"" + EOL
            + "}" + EOL
        )

    def to_definition(self, prefix: str = "") -> str:
        out = [
            prefix + "Material {" + EOL,
            prefix + TAB + f"Alias: \"{self.alias}\"" + EOL,
            prefix + TAB + f"Effect: \"{self.effect}\"" + EOL,
            prefix + TAB + "Flags: 0" + EOL,
            prefix + TAB + f"AttributeCount: {len(self.attributes)}" + EOL,
        ]
        for attr in self.attributes:
            if isinstance(attr.value, str):
                value = f"\"{attr.value}\""
            else:
                value = f"( {fmt_vec(attr.value)} )"
            out.append(prefix + TAB + "Attribute {" + EOL)
            out.append(prefix + TAB + TAB + f"Format: {attr.format_name}" + EOL)
            out.append(prefix + TAB + TAB + f"Tag: \"{attr.name}\"" + EOL)
            out.append(prefix + TAB + TAB + f"Value: {value}" + EOL)
            out.append(prefix + TAB + "}" + EOL)
        out.append(prefix + TAB + f"TextureCount: {len(self.textures)}" + EOL)
        for i, tex in enumerate(self.textures):
            out.append(prefix + TAB + "Texture {" + EOL)
            out.append(prefix + TAB + TAB + f"Tag: \"texture[{i}]:{tex.name}\"" + EOL)
            out.append(prefix + TAB + TAB + f"Value: \"{tex.path}\"" + EOL)
            out.append(prefix + TAB + "}" + EOL)
        out.append(prefix + "}" + EOL)
        return "".join(out)
