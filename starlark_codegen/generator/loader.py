"""Load type declarations into a linked type graph.

A package is either a directory of Python modules declaring ``@dataclass``
records, or a JSON ``PackageDoc``. Both are first reduced to a
``PackageDoc`` and then resolved by ``TypeResolver``.

Marker tags live in the comment lines directly above a class (or its first
decorator) and above each field::

    # +starlark:gen=true
    @dataclass
    class Cmd:
        metadata: ObjectMeta = field(default_factory=ObjectMeta)
        spec: CmdSpec = field(default_factory=CmdSpec)
"""

import ast
from pathlib import Path

from .config import GeneratorConfig
from .tags import extract_single_bool_tag
from .typeexpr import Generic, Ref, TypeExpr, Union, is_none, parse_type_expr
from .types import (
    SCALAR_TYPES,
    Kind,
    LoadError,
    Member,
    MemberDoc,
    Package,
    PackageDoc,
    TagError,
    Type,
    TypeDoc,
)

SLICE_GENERICS = frozenset(["list", "List", "Sequence", "MutableSequence"])
MAP_GENERICS = frozenset(["dict", "Dict", "Mapping", "MutableMapping"])
OPAQUE_NAMES = frozenset(["Any", "object"])


def package_path(directory: Path) -> str:
    """Dotted import path of a package directory.

    Walks up while the parent directory is itself a package.
    """
    directory = directory.resolve()
    parts = [directory.name]
    parent = directory.parent
    while (parent / "__init__.py").exists() and parent != parent.parent:
        parts.append(parent.name)
        parent = parent.parent
    return ".".join(reversed(parts))


def _comment_block(lines: list[str], lineno: int) -> list[str]:
    """Return the contiguous ``#`` comment lines ending just above ``lineno`` (1-based)."""
    block: list[str] = []
    i = lineno - 2
    while i >= 0:
        text = lines[i].strip()
        if not text.startswith("#"):
            break
        block.append(text.lstrip("#").strip())
        i -= 1
    return list(reversed(block))


def _is_dataclass_decorator(node: ast.expr) -> bool:
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Name):
        return node.id == "dataclass"
    if isinstance(node, ast.Attribute):
        return node.attr == "dataclass"
    return False


def _annotation_text(node: ast.expr) -> str:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return ast.unparse(node)


def _is_class_var(annotation: str) -> bool:
    head = annotation.split("[", 1)[0].strip()
    return head in ("ClassVar", "typing.ClassVar")


def _resolve_relative(pkg_path: str, module: str | None, level: int) -> str:
    if level == 0:
        return module or ""
    base = pkg_path.split(".")
    # level 1 is the package itself
    if level - 1 >= len(base):
        raise LoadError(f"relative import beyond top-level package in {pkg_path}")
    base = base[: len(base) - (level - 1)]
    return ".".join(base + ([module] if module else []))


class _ModuleReader:
    """Collects declarations from one module's syntax tree."""

    def __init__(
        self, source: str, filename: str, pkg_path: str, module: str, config: GeneratorConfig
    ):
        self.lines = source.splitlines()
        self.filename = filename
        self.pkg_path = pkg_path
        self.module = module
        self.config = config
        try:
            self.tree = ast.parse(source, filename=filename)
        except SyntaxError as err:
            raise LoadError(f"parsing {filename}: {err}") from err

    def read(self, doc: PackageDoc) -> None:
        start = len(doc.types)
        for node in self.tree.body:
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.asname:
                        doc.imports[alias.asname] = alias.name
                    else:
                        head = alias.name.split(".")[0]
                        doc.imports[head] = head
            elif isinstance(node, ast.ImportFrom):
                module = _resolve_relative(self.pkg_path, node.module, node.level)
                for alias in node.names:
                    local = alias.asname or alias.name
                    doc.imports[local] = f"{module}.{alias.name}" if module else alias.name
            elif isinstance(node, ast.ClassDef):
                if any(_is_dataclass_decorator(d) for d in node.decorator_list):
                    doc.types.append(self._read_class(node))
            elif isinstance(node, ast.Assign):
                alias = self._read_new_type(node)
                if alias is not None:
                    doc.types.append(alias)
            elif isinstance(node, ast.AnnAssign):
                alias = self._read_type_alias(node)
                if alias is not None:
                    doc.types.append(alias)
            elif isinstance(node, getattr(ast, "TypeAlias", ())):
                # "type X = ..." statements (Python 3.12+)
                doc.types.append(
                    TypeDoc(
                        name=node.name.id,
                        alias_of=_annotation_text(node.value),
                        comment_lines=_comment_block(self.lines, node.lineno),
                    )
                )

        for type_doc in doc.types[start:]:
            type_doc.module = self.module

    def _read_class(self, node: ast.ClassDef) -> TypeDoc:
        first_line = min([node.lineno] + [d.lineno for d in node.decorator_list])
        members: list[MemberDoc] = []
        for stmt in node.body:
            if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
                continue
            annotation = _annotation_text(stmt.annotation)
            if _is_class_var(annotation):
                continue

            comments = _comment_block(self.lines, stmt.lineno)
            try:
                embedded = extract_single_bool_tag(self.config.embedded_tag, comments)
            except TagError as err:
                raise TagError(f"parsing tags in {node.name}.{stmt.target.id}: {err}") from err
            members.append(
                MemberDoc(
                    name=stmt.target.id,
                    type=annotation,
                    embedded=embedded,
                    comment_lines=comments,
                )
            )

        return TypeDoc(
            name=node.name,
            members=members,
            bases=[ast.unparse(b) for b in node.bases],
            comment_lines=_comment_block(self.lines, first_line),
        )

    def _read_new_type(self, node: ast.Assign) -> TypeDoc | None:
        # X = NewType("X", str)
        if len(node.targets) != 1 or not isinstance(node.targets[0], ast.Name):
            return None
        call = node.value
        if not isinstance(call, ast.Call) or len(call.args) != 2:
            return None
        func = call.func
        func_name = func.id if isinstance(func, ast.Name) else getattr(func, "attr", None)
        if func_name != "NewType":
            return None
        return TypeDoc(
            name=node.targets[0].id,
            alias_of=_annotation_text(call.args[1]),
            comment_lines=_comment_block(self.lines, node.lineno),
        )

    def _read_type_alias(self, node: ast.AnnAssign) -> TypeDoc | None:
        # X: TypeAlias = str
        if not isinstance(node.target, ast.Name) or node.value is None:
            return None
        if ast.unparse(node.annotation) not in ("TypeAlias", "typing.TypeAlias"):
            return None
        return TypeDoc(
            name=node.target.id,
            alias_of=_annotation_text(node.value),
            comment_lines=_comment_block(self.lines, node.lineno),
        )


def read_source_dir(
    directory: Path, config: GeneratorConfig, package: str | None = None
) -> PackageDoc:
    """Read the declarations of every module in a package directory."""
    if not directory.is_dir():
        raise LoadError(f"not a directory: {directory}")

    pkg_path = package or package_path(directory)
    doc = PackageDoc(name=pkg_path.rsplit(".", 1)[-1], path=pkg_path)
    for source_file in sorted(directory.glob("*.py")):
        try:
            source = source_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as err:
            raise LoadError(f"reading {source_file}: {err}") from err
        module = pkg_path if source_file.stem == "__init__" else f"{pkg_path}.{source_file.stem}"
        _ModuleReader(source, str(source_file), pkg_path, module, config).read(doc)
    return doc


class TypeResolver:
    """Turns a ``PackageDoc`` into linked ``Type`` descriptors.

    Every declared record becomes exactly one ``Type`` shared by all its
    references; compound types are interned by expression.
    """

    def __init__(self, doc: PackageDoc):
        self.doc = doc
        self.path = doc.path or doc.name
        self.docs: dict[str, TypeDoc] = {}
        for type_doc in doc.types:
            if type_doc.name in self.docs:
                raise LoadError(f"type {type_doc.name} declared more than once")
            self.docs[type_doc.name] = type_doc
        self._declared: dict[str, Type] = {}
        self._resolving: set[str] = set()
        self._interned: dict[tuple, Type] = {}

    def resolve(self) -> Package:
        # Create every record first so members can refer to any of them
        for type_doc in self.doc.types:
            if type_doc.alias_of is None:
                self._declared[type_doc.name] = Type(
                    name=type_doc.name,
                    kind=Kind.STRUCT,
                    package=type_doc.module or self.path,
                    comment_lines=tuple(type_doc.comment_lines),
                )

        for type_doc in self.doc.types:
            if type_doc.alias_of is not None:
                self._declared_type(type_doc.name)

        for type_doc in self.doc.types:
            if type_doc.alias_of is None:
                t = self._declared[type_doc.name]
                for member_doc in self._member_docs(type_doc, set()):
                    try:
                        member_type = self.resolve_expr(member_doc.type)
                    except LoadError as err:
                        raise LoadError(f"loading {t.name}.{member_doc.name}: {err}") from err
                    t.members.append(
                        Member(
                            name=member_doc.name,
                            type=member_type,
                            embedded=member_doc.embedded,
                            comment_lines=tuple(member_doc.comment_lines),
                        )
                    )

        return Package(
            name=self.doc.name,
            path=self.path,
            types=tuple(self._declared[t.name] for t in self.doc.types),
        )

    def _member_docs(self, type_doc: TypeDoc, seen: set[str]) -> list[MemberDoc]:
        """Members of a record including those of declared base records."""
        if type_doc.name in seen:
            raise LoadError(f"inheritance cycle through {type_doc.name}")
        seen = seen | {type_doc.name}

        members: list[MemberDoc] = []
        for base in type_doc.bases:
            base_doc = self.docs.get(base)
            if base_doc is None or base_doc.alias_of is not None:
                continue
            for inherited in self._member_docs(base_doc, seen):
                members = [m for m in members if m.name != inherited.name] + [inherited]

        for member in type_doc.members:
            existing = [i for i, m in enumerate(members) if m.name == member.name]
            if existing:
                members[existing[0]] = member
            else:
                members.append(member)
        return members

    def _declared_type(self, name: str) -> Type:
        if name in self._declared:
            return self._declared[name]

        type_doc = self.docs[name]
        if name in self._resolving:
            raise LoadError(f"alias cycle through {name}")
        self._resolving.add(name)
        underlying = self.resolve_expr(type_doc.alias_of)
        self._resolving.discard(name)

        t = Type(
            name=name,
            kind=Kind.ALIAS,
            package=type_doc.module or self.path,
            underlying=underlying,
            comment_lines=tuple(type_doc.comment_lines),
        )
        self._declared[name] = t
        return t

    def resolve_expr(self, text: str) -> Type:
        return self._resolve(parse_type_expr(text))

    def _intern(self, t: Type) -> Type:
        # Compound types are keyed by the identity of their parts
        key = (t.kind, t.package, t.name, id(t.elem), id(t.key))
        return self._interned.setdefault(key, t)

    def _resolve(self, expr: TypeExpr) -> Type:
        if isinstance(expr, Union):
            return self._resolve_union(list(expr.items))
        if isinstance(expr, Generic):
            return self._resolve_generic(expr)
        return self._resolve_ref(expr)

    def _resolve_union(self, items: list[TypeExpr]) -> Type:
        optional = any(is_none(i) for i in items)
        rest = [i for i in items if not is_none(i)]
        if len(rest) != 1:
            # A union of several types has no single shape
            text = " | ".join(self._resolve(i).expr for i in rest)
            return self._intern(Type(name=text, kind=Kind.SCALAR))

        t = self._resolve(rest[0])
        if optional and t.kind != Kind.POINTER:
            return self._intern(Type(name="", kind=Kind.POINTER, elem=t))
        return t

    def _resolve_generic(self, expr: Generic) -> Type:
        head = expr.ref.parts[-1]
        args = expr.args

        if head in SLICE_GENERICS and len(args) == 1:
            return self._intern(Type(name="", kind=Kind.SLICE, elem=self._resolve(args[0])))
        if head in MAP_GENERICS and len(args) == 2:
            return self._intern(
                Type(
                    name="",
                    kind=Kind.MAP,
                    key=self._resolve(args[0]),
                    elem=self._resolve(args[1]),
                )
            )
        if head == "Optional" and len(args) == 1:
            return self._resolve_union([args[0], Ref(("None",))])
        if head == "Union":
            return self._resolve_union(list(args))
        if head == "Annotated" and args:
            return self._resolve(args[0])
        raise LoadError(f"unsupported generic type {expr.ref.dotted}")

    def _resolve_ref(self, ref: Ref) -> Type:
        if len(ref.parts) == 1:
            name = ref.parts[0]
            if name in self.docs:
                return self._declared_type(name)
            if name in SCALAR_TYPES or name in OPAQUE_NAMES:
                return self._intern(Type(name=name, kind=Kind.SCALAR))
            if name in self.doc.imports:
                return self._external(self.doc.imports[name])
            raise LoadError(f"unknown type {name}")

        head, *rest = ref.parts
        qualified = ".".join([self.doc.imports.get(head, head), *rest])
        return self._external(qualified)

    def _external(self, qualified: str) -> Type:
        package, _, name = qualified.rpartition(".")
        if name in self.docs and package in (self.path, self.docs[name].module or self.path):
            return self._declared_type(name)
        if package == "typing" or name in OPAQUE_NAMES:
            return self._intern(Type(name=name, kind=Kind.SCALAR))
        return self._intern(Type(name=name, kind=Kind.STRUCT, package=package, external=True))


def resolve_package(doc: PackageDoc) -> Package:
    return TypeResolver(doc).resolve()


def load_package(
    path: str | Path, config: GeneratorConfig | None = None, package: str | None = None
) -> Package:
    """Load a package directory or a JSON package document."""
    config = config or GeneratorConfig()
    path = Path(path)

    if path.is_dir():
        doc = read_source_dir(path, config, package)
    elif path.suffix == ".json" and path.is_file():
        try:
            doc = PackageDoc.from_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, KeyError, TypeError) as err:
            raise LoadError(f"reading {path}: {err}") from err
        if package:
            old_path = doc.path or doc.name
            for type_doc in doc.types:
                if type_doc.module == old_path or type_doc.module.startswith(old_path + "."):
                    type_doc.module = package + type_doc.module[len(old_path) :]
            doc.path = package
            doc.name = package.rsplit(".", 1)[-1]
    else:
        raise LoadError(f"cannot load types from {path}")

    return resolve_package(doc)


def find_root_types(pkg: Package, config: GeneratorConfig | None = None) -> list[Type]:
    """Find all declared records tagged for binding generation, sorted by name."""
    config = config or GeneratorConfig()
    results = []
    for t in pkg.types:
        if t.kind != Kind.STRUCT:
            continue
        try:
            ok = extract_single_bool_tag(config.gen_tag, t.comment_lines)
        except TagError as err:
            raise TagError(f"parsing tags in {t.name}: {err}") from err
        if ok:
            results.append(t)
    return sorted(results, key=lambda t: t.name)
