"""Python code generator for Starlark bindings."""

import keyword
from dataclasses import dataclass

from jinja2 import Environment, PackageLoader

from .config import GeneratorConfig, RootShape
from .discover import root_member
from .naming import registered_name, to_lower_camel, to_snake
from .planner import Assign, ConversionPlan, plan_member, plan_members
from .types import GenerationError, Kind, Package, Type, UnsupportedFieldError

env = Environment(
    loader=PackageLoader("starlark_codegen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("starlark.py.j2")

# Arguments every root constructor takes besides its fields
ROOT_ARGS = frozenset(["name", "labels", "annotations"])

# Module and Plugin attributes generated names must not replace
MODULE_NAMES = frozenset(["copy", "starkit", "starlark", "value", "Plugin"])
PLUGIN_NAMES = frozenset(["objects", "register", "register_symbols"])


@dataclass(frozen=True)
class ModuleImport:
    """A model package imported by the generated module."""

    path: str
    name: str

    @property
    def parent(self) -> str | None:
        parent, _, _ = self.path.rpartition(".")
        return parent or None


@dataclass(frozen=True)
class Registration:
    name: str
    fn_name: str


@dataclass(frozen=True)
class RootBinding:
    """A top-level constructor that registers a new API object."""

    type: Type
    fn_name: str
    model: str
    meta_attr: str
    meta_model: str
    record: str  # expression for the object holding the fields
    spec_attr: str | None
    spec_model: str | None
    plans: list[ConversionPlan]
    packages: tuple[str, ...]  # packages of the root, metadata and spec types

    def arg_name(self, plan: ConversionPlan) -> str:
        if plan.key in ROOT_ARGS:
            return plan.var_name
        return plan.key


@dataclass(frozen=True)
class StructBinding:
    """Wrapper, constructor, unpacker and list unpacker for a member type."""

    type: Type
    fn_name: str
    model: str
    plans: list[ConversionPlan]


def _package_name(path: str) -> str:
    return path.rsplit(".", 1)[-1]


def model_type_name(t: Type) -> str:
    """How the generated module refers to the native type."""
    if not t.package:
        return t.name
    return f"{_package_name(t.package)}.{t.name}"


def attr_path(record: str, path: tuple[str, ...]) -> str:
    return ".".join((record,) + path)


def method_name(t: Type, config: GeneratorConfig) -> str:
    """Name of the Plugin method constructing a type."""
    name = to_lower_camel(t.name, config.naming)
    if keyword.iskeyword(name) or name in PLUGIN_NAMES:
        name += "_"
    return name


def _check_keys(t: Type, plans: list[ConversionPlan], reserved: frozenset[str] = frozenset()):
    seen = set(reserved)
    var_names = set()
    for plan in plans:
        if plan.key in seen:
            raise GenerationError(f"duplicate attribute {plan.key} in {t.name}")
        if plan.var_name in var_names:
            raise GenerationError(f"duplicate variable {plan.var_name} in {t.name}")
        seen.add(plan.key)
        var_names.add(plan.var_name)


def _check_class_names(structs: list["StructBinding"]):
    names: set[str] = set()
    for s in structs:
        for name in (s.type.name, f"{s.type.name}List"):
            if name in names or name in MODULE_NAMES:
                raise GenerationError(f"generated class {name} collides with another name")
            names.add(name)


def _find_member(t: Type, name: str):
    for m in t.members:
        if to_snake(m.name) == name:
            return m
    return None


def root_binding(t: Type, config: GeneratorConfig) -> RootBinding:
    """Describe the constructor of a root type."""
    found = root_member(t, config)
    if found is None:
        raise GenerationError(f"type has no spec or data field: {t.name}")
    shape, member = found

    meta = _find_member(t, config.metadata_member)
    if meta is None or meta.type.kind != Kind.STRUCT:
        raise GenerationError(f"type has no {config.metadata_member} field: {t.name}")

    try:
        if shape == RootShape.SPEC:
            if member.type.kind != Kind.STRUCT:
                raise GenerationError(f"spec of {t.name} must be a struct, got {member.type}")
            if member.type.external:
                raise UnsupportedFieldError(
                    f"members of spec type {member.type.package}.{member.type.name} are unknown"
                )
            plans = plan_members(member.type.members, config)
            record = f"_obj.{member.name}"
            spec_attr, spec_model = member.name, model_type_name(member.type)
            packages = (t.package, meta.type.package, member.type.package)
        else:
            plans = plan_member(member, config)
            record = "_obj"
            spec_attr, spec_model = None, None
            packages = (t.package, meta.type.package)
    except GenerationError as err:
        raise type(err)(f"generating type {t.name}: {err}") from err

    binding = RootBinding(
        type=t,
        fn_name=method_name(t, config),
        model=model_type_name(t),
        meta_attr=meta.name,
        meta_model=model_type_name(meta.type),
        record=record,
        spec_attr=spec_attr,
        spec_model=spec_model,
        plans=plans,
        packages=packages,
    )
    for plan in plans:
        if plan.key in ROOT_ARGS and binding.arg_name(plan) == plan.key:
            raise GenerationError(f"field {plan.key} of {t.name} collides with a root argument")
    _check_keys(t, [p for p in plans if p.key not in ROOT_ARGS], ROOT_ARGS)
    return binding


def struct_binding(t: Type, config: GeneratorConfig) -> StructBinding:
    """Describe the wrapper types of a discovered member type."""
    try:
        plans = plan_members(t.members, config)
    except GenerationError as err:
        raise type(err)(f"generating {t.name} unpacker: {err}") from err
    _check_keys(t, plans)
    return StructBinding(
        type=t,
        fn_name=method_name(t, config),
        model=model_type_name(t),
        plans=plans,
    )


def registrations(pkg: Package, types: list[Type], config: GeneratorConfig) -> list[Registration]:
    """Builtin names for roots followed by member types, in that order."""
    return [
        Registration(
            name=registered_name(pkg.name, t.name),
            fn_name=method_name(t, config),
        )
        for t in types
    ]


def model_imports(roots: list[RootBinding], structs: list[StructBinding]) -> list[ModuleImport]:
    """Every package whose types the generated module constructs."""
    paths: set[str] = set()
    for root in roots:
        paths.update(root.packages)
    for struct in structs:
        paths.add(struct.type.package)
    paths.discard("")

    imports = [ModuleImport(path=p, name=_package_name(p)) for p in sorted(paths)]
    names: dict[str, str] = {}
    for imp in imports:
        if imp.name in MODULE_NAMES:
            raise GenerationError(f"package {imp.path} shadows generated name {imp.name}")
        if imp.name in names:
            raise GenerationError(
                f"packages {names[imp.name]} and {imp.path} would both be imported as {imp.name}"
            )
        names[imp.name] = imp.path
    return imports


def render(
    pkg: Package,
    root_types: list[Type],
    member_types: list[Type],
    config: GeneratorConfig | None = None,
) -> str:
    """Render bindings for the root types and their member types."""
    config = config or GeneratorConfig()

    roots = [root_binding(t, config) for t in root_types]
    structs = [struct_binding(t, config) for t in member_types]
    _check_class_names(structs)

    return template.render(
        package=pkg,
        runtime_import=config.runtime_import,
        imports=model_imports(roots, structs),
        registrations=registrations(pkg, root_types + member_types, config),
        roots=roots,
        structs=structs,
        Assign=Assign,
        attr_path=attr_path,
    )
