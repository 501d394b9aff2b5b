"""Tests for the behaviour of generated bindings."""

import importlib

import pytest

from starlark_codegen.runtime.meta import ObjectMeta
from starlark_codegen.runtime.starlark import Dict, EvalError, List, UnpackError


@pytest.fixture
def api(bindings):
    return bindings["types"]


@pytest.fixture
def call(env, thread):
    def call(name, *args, **kwargs):
        return env.call(thread, f"v1alpha1.{name}", *args, **kwargs)

    return call


def describe_root_constructors():
    def registers_the_created_object(expect, call, plugin, api, tmp_path):
        result = call(
            "cmd",
            "echo",
            labels=Dict({"team": "dev"}),
            args=List(["echo", "hi"]),
            dir="sub",
            disable_source=True,
            phase="running",
        )
        expect(result) == None
        expect(len(plugin.objects)) == 1

        cmd = plugin.objects[0]
        expect(isinstance(cmd, api.Cmd)) == True
        expect(cmd.metadata) == ObjectMeta(name="echo", labels={"team": "dev"}, annotations={})
        expect(cmd.spec.args) == ["echo", "hi"]
        expect(cmd.spec.dir) == str(tmp_path.resolve() / "sub")
        expect(cmd.spec.disable_source) == True
        expect(cmd.spec.phase) == "running"

    def defaults_local_paths_to_the_script_directory(expect, call, plugin, tmp_path):
        call("cmd", "echo")
        expect(plugin.objects[0].spec.dir) == str(tmp_path.resolve())

    def leaves_unset_optional_structs_empty(expect, call, plugin):
        call("cmd", "echo", readiness_probe=None)
        spec = plugin.objects[0].spec
        expect(spec.readiness_probe) == None
        expect(spec.restart_on) == None

    def fills_only_the_supplied_fields_of_optional_structs(expect, call, plugin, api):
        call("cmd", "echo", readiness_probe=Dict({"period_seconds": 3}))
        expect(plugin.objects[0].spec.readiness_probe) == api.Probe(
            timing=api.Timing(period_seconds=3)
        )

    def requires_a_name(expect, call):
        with pytest.raises(UnpackError) as exc:
            call("cmd", args=List(["echo"]))
        expect(str(exc.value)) == "v1alpha1.cmd: missing argument for name"

    def does_not_register_on_failure(expect, call, plugin):
        with pytest.raises(UnpackError) as exc:
            call("cmd", "echo", dir=3)
        expect(str(exc.value)) == "v1alpha1.cmd: for parameter dir: expected string, got: int"
        expect(plugin.objects) == []

    def rejects_non_dicts_for_struct_arguments(expect, call):
        with pytest.raises(UnpackError) as exc:
            call("cmd", "echo", readiness_probe="fast")
        expect(str(exc.value)) == (
            "v1alpha1.cmd: for parameter readiness_probe: expected dict, actual: string"
        )

    def exposes_colliding_fields_under_renamed_arguments(expect, call, plugin, tmp_path):
        call(
            "extension",
            "ext",
            labels=Dict({"owner": "me"}),
            spec_labels=Dict({"created-by": "ext"}),
            args=List(["--fast"]),
            paths="lib",
        )
        ext = plugin.objects[0]
        expect(ext.metadata.labels) == {"owner": "me"}
        expect(ext.spec.labels) == {"created-by": "ext"}
        expect(ext.spec.args) == ["--fast"]
        expect(ext.spec.paths) == [str(tmp_path.resolve() / "lib")]

    def unpacks_data_roots(expect, call, plugin, api):
        call("config_map", "settings", data=Dict({"mode": "debug"}))
        expect(plugin.objects[0]) == api.ConfigMap(
            metadata=ObjectMeta(name="settings"), data={"mode": "debug"}
        )

    def cannot_be_registered_twice(expect, plugin, env):
        with pytest.raises(EvalError) as exc:
            plugin.register_symbols(env)
        expect(str(exc.value)) == "builtin v1alpha1.cmd already defined"


def describe_nested_constructors():
    def build_values_passed_to_roots(expect, call, plugin, api):
        exec_action = call("exec_action", command=List(["ls"]))
        probe = call("probe", period_seconds=5, exec=exec_action, failure_threshold=3)
        call("cmd", "echo", readiness_probe=probe)

        expect(plugin.objects[0].spec.readiness_probe) == api.Probe(
            timing=api.Timing(period_seconds=5),
            exec=api.ExecAction(command=["ls"]),
            failure_threshold=3,
        )

    def construct_types_from_their_declaring_module(expect, call, api):
        timing = call("timing", period_seconds=3)

        expect(api.__name__) == "exampleapi.v1alpha1.types"
        expect(type(timing.value)) == api.Timing
        expect(hasattr(importlib.import_module("exampleapi.v1alpha1"), "Timing")) == False

    def accept_positional_arguments(expect, call, api):
        probe = call("probe", 1, 2)
        expect(probe.value.timing) == api.Timing(initial_delay_seconds=1, period_seconds=2)

    def flatten_embedded_fields(expect, call):
        probe = call("probe", initial_delay_seconds=7)
        expect(sorted(probe.keys())) == ["initial_delay_seconds"]
        expect(probe.value.timing.initial_delay_seconds) == 7

    def return_frozen_dicts(expect, call):
        probe = call("probe", period_seconds=1)
        expect(probe.is_unpacked) == True
        expect(probe.frozen) == True
        expect(probe["period_seconds"]) == 1
        with pytest.raises(EvalError):
            probe.set_key("period_seconds", 2)

    def reject_unknown_keywords(expect, call):
        with pytest.raises(UnpackError) as exc:
            call("probe", bogus=1)
        expect(str(exc.value)) == 'v1alpha1.probe: unexpected keyword argument "bogus"'

    def omit_skipped_timestamp_fields(expect, call):
        with pytest.raises(UnpackError):
            call("start_on_spec", start_after="2024-01-01")
        expect(call("start_on_spec", ui_buttons=List(["b"])).value.start_after) == None

    def build_self_referential_values(expect, call, plugin, api):
        leaf = call("selector", match_labels=Dict({"tier": "db"}))
        inner = call("selector", any_of=List([leaf]), unless=call("selector"))
        call("extension", "ext", selector=inner)

        expect(plugin.objects[0].spec.selector) == api.Selector(
            any_of=[api.Selector(match_labels={"tier": "db"})],
            unless=api.Selector(),
        )


def describe_wrappers():
    def unpack_dicts_into_native_values(expect, bindings, thread, api):
        d = Dict({"period_seconds": 4, "failure_threshold": None})
        probe = bindings["Probe"](thread)
        probe.unpack(d)

        expect(probe.value) == api.Probe(timing=api.Timing(period_seconds=4))
        expect(d.frozen) == True
        expect(probe) == d

    def copy_values_on_the_identity_path(expect, bindings, call):
        original = call("probe", period_seconds=2)
        probe = bindings["Probe"]()
        probe.unpack(original)

        expect(probe.value) == original.value
        expect(probe.value is original.value) == False
        expect(probe.is_unpacked) == True

    def reject_unknown_attributes(expect, bindings):
        with pytest.raises(UnpackError) as exc:
            bindings["Probe"]().unpack(Dict({"period_seconds": 1, "bogus": 1}))
        expect(str(exc.value)) == "unexpected attribute name: bogus"

    def reject_non_string_keys(expect, bindings):
        with pytest.raises(UnpackError) as exc:
            bindings["Timing"]().unpack(Dict({1: 1}))
        expect(str(exc.value)) == "key must be string. Got: int"

    def name_the_attribute_that_failed(expect, bindings):
        with pytest.raises(UnpackError) as exc:
            bindings["Probe"]().unpack(Dict({"exec": Dict({"command": List([1])})}))
        expect(str(exc.value)) == (
            "unpacking exec: unpacking command: at index 0: expected string, got: int"
        )

    def reject_non_dicts(expect, bindings):
        with pytest.raises(UnpackError) as exc:
            bindings["Timing"]().unpack(List())
        expect(str(exc.value)) == "expected dict, actual: list"

    def reject_wrappers_of_other_types(expect, bindings, call):
        timing = call("timing", period_seconds=1)
        probe = bindings["Probe"]()
        with pytest.raises(UnpackError) as exc:
            probe.unpack(timing)
        expect(str(exc.value)) == "expected dict or Probe, actual: Timing"
        expect(probe.is_unpacked) == False


def describe_list_wrappers():
    def unpack_each_element(expect, bindings, call, api):
        items = List([call("probe", period_seconds=1), Dict({"period_seconds": 2})])
        probes = bindings["ProbeList"]()
        probes.unpack(items)

        expect([p.timing.period_seconds for p in probes.value]) == [1, 2]
        expect(items.frozen) == True

    def name_the_failing_index(expect, call):
        probe = call("probe", period_seconds=1)
        with pytest.raises(UnpackError) as exc:
            call("extension", "ext", probes=List([probe, "x"]))
        expect(str(exc.value)) == (
            "v1alpha1.extension: for parameter probes: at index 1: expected dict, actual: string"
        )

    def reject_non_lists(expect, bindings):
        with pytest.raises(UnpackError) as exc:
            bindings["ProbeList"]().unpack(Dict())
        expect(str(exc.value)) == "expected list, actual: dict"
