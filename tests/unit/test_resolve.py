"""
Unit tests for expression constness and type resolution.
"""

import pytest

from shaderlint.lint.resolve import (
    Constness,
    component_type,
    is_float_type,
    is_sampling_function,
    is_vector_type,
    vector_size,
    vector_type,
)
from shaderlint.syntax.ast_nodes import Identifier, walk

PRELUDE = """
#define TAP_COUNT 9
const int LIGHT_COUNT = 4;
uniform float exposure;
uniform sampler2D albedo_tex;
uniform isampler2D index_tex;
uniform sampler2DShadow shadow_tex;
in vec2 in_uv;
struct Light { vec3 position; float radius; };
layout(push_constant) uniform PushData { mat4 model; vec4 tint; } pc;
float helper(float v) { return v; }
"""


@pytest.fixture
def resolve(annotate_source):
    """
    Fixture resolving the initializer of 'probe' declared in main().

    The body may declare locals before the probe.
    """

    def _resolve(expression: str, body: str = ""):
        shader = annotate_source(
            PRELUDE + f"void main() {{ {body} float probe = {expression}; }}"
        )
        for statement in shader.unit.find_function("main").body.statements:
            declarator = statement.declarators[-1]
            if declarator.name == "probe":
                initializer = declarator.initializer
                return (
                    shader.resolver.constness(initializer, "main"),
                    shader.resolver.type_of(initializer, "main"),
                )
        raise AssertionError("probe not found")

    return _resolve


class TestTypeHelpers:
    """Tests for type name helpers."""

    @pytest.mark.parametrize(
        "type_name,size",
        [("float", 1), ("vec3", 3), ("ivec2", 2), ("dvec4", 4), ("mat3", 0), ("void", 0), (None, 0)],
    )
    def test_vector_size(self, type_name, size):
        assert vector_size(type_name) == size

    @pytest.mark.parametrize(
        "type_name,component",
        [("vec3", "float"), ("uvec2", "uint"), ("bvec4", "bool"), ("dmat2x3", "double"), ("Light", None)],
    )
    def test_component_type(self, type_name, component):
        assert component_type(type_name) == component

    def test_vector_type(self):
        assert vector_type("float", 3) == "vec3"
        assert vector_type("int", 1) == "int"
        assert vector_type("float", 5) is None

    def test_predicates(self):
        assert is_vector_type("vec2")
        assert not is_vector_type("float")
        assert is_float_type("mat4")
        assert not is_float_type("ivec3")

    @pytest.mark.parametrize("name", ["texture", "textureLod", "texelFetch", "textureGatherOffset"])
    def test_sampling_functions(self, name):
        assert is_sampling_function(name)

    @pytest.mark.parametrize("name", ["textureSize", "normalize", None])
    def test_not_sampling_functions(self, name):
        assert not is_sampling_function(name)


class TestConstness:
    """Tests for compile-time constness classification."""

    @pytest.mark.parametrize(
        "expression",
        [
            "1.0",
            "LIGHT_COUNT",
            "TAP_COUNT",
            "LIGHT_COUNT * 2 + 1",
            "vec3(1.0, 2.0, 3.0).x",
            "max(1.0, 2.0)",
            "gl_MaxDrawBuffers",
            "-LIGHT_COUNT",
        ],
    )
    def test_constant(self, resolve, expression):
        assert resolve(expression)[0] == Constness.CONSTANT

    @pytest.mark.parametrize(
        "expression",
        [
            "exposure",
            "exposure * 2.0",
            "in_uv.x",
            "helper(1.0)",
            "pc.tint",
        ],
    )
    def test_dynamic(self, resolve, expression):
        assert resolve(expression)[0] == Constness.DYNAMIC

    def test_local_const_is_constant(self, resolve):
        constness, _ = resolve("k * 2", body="const int k = 3;")
        assert constness == Constness.CONSTANT

    def test_local_variable_is_dynamic(self, resolve):
        constness, _ = resolve("k * 2", body="int k = 3;")
        assert constness == Constness.DYNAMIC

    def test_unknown_function_is_unknown(self, resolve):
        assert resolve("SOME_MACRO_FN(1.0)")[0] == Constness.UNKNOWN

    def test_combine(self):
        assert Constness.combine([]) == Constness.CONSTANT
        assert Constness.combine([Constness.CONSTANT, Constness.DYNAMIC]) == Constness.DYNAMIC
        assert Constness.combine([Constness.DYNAMIC, Constness.UNKNOWN]) == Constness.UNKNOWN


class TestTypeOf:
    """Tests for expression type resolution."""

    @pytest.mark.parametrize(
        "expression,expected",
        [
            ("1", "int"),
            ("1u", "uint"),
            ("1.0", "float"),
            ("1.0lf", "double"),
            ("true", "bool"),
            ("exposure", "float"),
            ("in_uv", "vec2"),
            ("in_uv.yx", "vec2"),
            ("in_uv.xxyy", "vec4"),
            ("in_uv * 2.0", "vec2"),
            ("2.0 * in_uv", "vec2"),
            ("exposure * 2", "float"),
            ("pc.tint.rgb", "vec3"),
            ("pc.model * pc.tint", "vec4"),
            ("pc.model[0]", "vec4"),
            ("pc.tint[1]", "float"),
            ("vec3(1.0)", "vec3"),
            ("normalize(pc.tint)", "vec4"),
            ("dot(in_uv, in_uv)", "float"),
            ("texture(albedo_tex, in_uv)", "vec4"),
            ("texture(index_tex, in_uv)", "ivec4"),
            ("texture(shadow_tex, vec3(in_uv, 0.5))", "float"),
            ("helper(1.0)", "float"),
            ("exposure > 1.0", "bool"),
            ("gl_FragCoord", "vec4"),
            ("Light(vec3(0.0), 1.0).radius", "float"),
        ],
    )
    def test_resolved(self, resolve, expression, expected):
        assert resolve(expression)[1] == expected

    @pytest.mark.parametrize(
        "expression",
        [
            "in_uv.z",
            "in_uv + pc.tint",
            "TAP_COUNT",
            "unknown_name",
            "exposure > 0.0 ? in_uv : pc.tint",
        ],
    )
    def test_unresolved(self, resolve, expression):
        assert resolve(expression)[1] is None

    def test_local_shadows_global(self, resolve):
        _, type_name = resolve("exposure", body="vec3 exposure = vec3(1.0);")
        assert type_name == "vec3"


def uses_in_main(shader, name: str) -> list[Identifier]:
    """Identifier uses of a name inside main(), in source order."""
    body = shader.unit.find_function("main").body
    return [node for node in walk(body) if isinstance(node, Identifier) and node.name == name]


class TestScopedResolution:
    """Tests that locals only shadow globals where they are visible."""

    def test_local_in_unrelated_block(self, annotate_source):
        shader = annotate_source(
            "const int sample_count = 4;\n"
            "void main() {\n"
            "    for (int i = 0; i < sample_count; i++) {}\n"
            "    if (true) { int sample_count = 2; }\n"
            "}\n"
        )
        (use,) = uses_in_main(shader, "sample_count")
        assert shader.resolver.constness(use, "main") == Constness.CONSTANT
        assert shader.resolver.type_of(use, "main") == "int"

    def test_use_before_declaration(self, annotate_source):
        shader = annotate_source(
            "uniform vec3 tint;\n"
            "void main() {\n"
            "    vec3 a = tint;\n"
            "    vec2 tint = vec2(1.0);\n"
            "    vec2 b = tint;\n"
            "}\n"
        )
        before, after = uses_in_main(shader, "tint")
        assert shader.resolver.type_of(before, "main") == "vec3"
        assert shader.resolver.type_of(after, "main") == "vec2"

    def test_inner_block_shadows_only_inside(self, annotate_source):
        shader = annotate_source(
            "uniform float exposure;\n"
            "void main() {\n"
            "    { vec3 exposure = vec3(1.0); float a = exposure.x; }\n"
            "    float b = exposure;\n"
            "}\n"
        )
        inner, outer = uses_in_main(shader, "exposure")
        assert shader.resolver.type_of(inner, "main") == "vec3"
        assert shader.resolver.type_of(outer, "main") == "float"

    def test_innermost_declaration_wins(self, annotate_source):
        shader = annotate_source(
            "void main() {\n"
            "    float v = 1.0;\n"
            "    { vec2 v = vec2(1.0); { vec3 v = vec3(1.0); float a = v.x; } float b = v.x; }\n"
            "    float c = v;\n"
            "}\n"
        )
        types = [shader.resolver.type_of(use, "main") for use in uses_in_main(shader, "v")]
        assert types == ["vec3", "vec2", "float"]

    def test_loop_variable_scoped_to_loop(self, annotate_source):
        shader = annotate_source(
            "const int i = 3;\n"
            "void main() {\n"
            "    for (int i = 0; i < 4; i++) {}\n"
            "    int k = i;\n"
            "}\n"
        )
        uses = uses_in_main(shader, "i")
        assert [shader.resolver.constness(use, "main") for use in uses] == [
            Constness.DYNAMIC,
            Constness.DYNAMIC,
            Constness.CONSTANT,
        ]
