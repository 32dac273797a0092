"""
Unit tests for the style and policy rules.
"""

import pytest

from shaderlint.lint.style import (
    check_declaration_order,
    check_file_name,
    check_identifier_case,
    check_out_parameter_suffix,
    check_version_directive,
)
from shaderlint.utils.diagnostics import Severity


class TestVersionDirective:
    """Tests for the version-directive rule."""

    def test_reported(self, run_check):
        diagnostics = run_check(check_version_directive, "#version 450\nvoid main() {}")
        assert len(diagnostics) == 1
        diagnostic = diagnostics[0]
        assert diagnostic.rule_id == "version-directive"
        assert diagnostic.severity == Severity.ERROR
        assert (diagnostic.span.start_line, diagnostic.span.start_col) == (1, 1)

    def test_every_occurrence_reported(self, run_check):
        source = "#version 450\nvoid main() {\n#version 460\n}"
        diagnostics = run_check(check_version_directive, source)
        assert [d.span.start_line for d in diagnostics] == [1, 3]

    def test_absent(self, run_check):
        assert run_check(check_version_directive, "#extension GL_EXT_foo : enable\nvoid main() {}") == []


class TestFileName:
    """Tests for the file-name rule."""

    @pytest.mark.parametrize(
        "file_identifier",
        ["blur.frag", "shaders/post/tone_map.vert", "C:\\shaders\\cull_lights.comp", "pass2.frag"],
    )
    def test_valid(self, run_check, file_identifier):
        assert run_check(check_file_name, "void main() {}", file_identifier) == []

    def test_bad_stem(self, run_check):
        diagnostics = run_check(check_file_name, "void main() {}", "shaders/BlurPass.frag")
        assert len(diagnostics) == 1
        assert diagnostics[0].rule_id == "file-name"
        assert diagnostics[0].suggested_fix == "blur_pass.frag"
        assert "BlurPass.frag" in diagnostics[0].message

    def test_bad_extension(self, run_check):
        diagnostics = run_check(check_file_name, "void main() {}", "blur.glsl")
        assert len(diagnostics) == 1
        assert "'.glsl'" in diagnostics[0].message

    def test_no_extension(self, run_check):
        diagnostics = run_check(check_file_name, "void main() {}", "blur")
        assert len(diagnostics) == 1
        assert "no extension" in diagnostics[0].message

    def test_both_problems(self, run_check):
        diagnostics = run_check(check_file_name, "", "Blur.txt")
        assert len(diagnostics) == 2

    def test_span_is_first_token(self, run_check):
        diagnostics = run_check(check_file_name, "\n\n  void main() {}", "Blur.frag")
        assert (diagnostics[0].span.start_line, diagnostics[0].span.start_col) == (3, 3)


class TestIdentifierCase:
    """Tests for the identifier-case rule."""

    def test_clean_shader(self, run_check):
        source = """
        #define maxSteps 8
        layout(location = 0) in vec2 in_uv;
        layout(location = 0) out vec4 out_color;
        struct LightData { vec3 position; float radius; };
        layout(push_constant) uniform PushData { mat4 model; } pc;
        const int LIGHT_COUNT = 4;
        const float pi = 3.14159;
        float shade_light(LightData light) { return light.radius; }
        void main() { gl_Position = vec4(0.0); float total_weight = 0.0; }
        """
        assert run_check(check_identifier_case, source) == []

    def test_variable_not_snake(self, run_check):
        diagnostics = run_check(check_identifier_case, "uniform float lightIntensity;")
        assert len(diagnostics) == 1
        diagnostic = diagnostics[0]
        assert diagnostic.rule_id == "identifier-case"
        assert diagnostic.message == "uniform 'lightIntensity' should be lower_snake_case"
        assert diagnostic.suggested_fix == "light_intensity"
        assert (diagnostic.span.start_col, diagnostic.span.end_col) == (15, 29)

    def test_type_not_camel(self, run_check):
        diagnostics = run_check(check_identifier_case, "struct light_data { vec3 position; };")
        assert len(diagnostics) == 1
        assert diagnostics[0].message == "struct 'light_data' should be UpperCamelCase"
        assert diagnostics[0].suggested_fix == "LightData"

    def test_block_type_names(self, run_check):
        diagnostics = run_check(
            check_identifier_case,
            "layout(binding = 0) uniform camera_data { mat4 viewProj; } camera;",
        )
        names = sorted(d.message.split("'")[1] for d in diagnostics)
        assert names == ["camera_data", "viewProj"]

    @pytest.mark.parametrize(
        "name,fix",
        [("maxLights", "max_lights"), ("Max_Lights", "MAX_LIGHTS")],
    )
    def test_constant_accepts_two_styles(self, run_check, name, fix):
        diagnostics = run_check(check_identifier_case, f"const int {name} = 4;")
        assert len(diagnostics) == 1
        assert "lower_snake_case or UPPER_SNAKE_CASE" in diagnostics[0].message
        assert diagnostics[0].suggested_fix == fix

    def test_functions_parameters_and_locals(self, run_check):
        source = "float computeLight(float lightDist) { float Result = lightDist; return Result; }"
        diagnostics = run_check(check_identifier_case, source)
        assert [d.message.split("'")[1] for d in diagnostics] == ["computeLight", "lightDist", "Result"]

    def test_builtins_and_macros_skipped(self, run_check):
        source = "#define Bad_Macro 1\ninvariant gl_Position;\nvoid main() { gl_FragDepth = 1.0; }"
        assert run_check(check_identifier_case, source) == []


class TestOutParameterSuffix:
    """Tests for the out-parameter-suffix rule."""

    def test_out_and_inout_checked(self, run_check):
        source = "void f(in float a, out float result, inout vec3 color_out, inout vec2 uv) {}"
        diagnostics = run_check(check_out_parameter_suffix, source)
        assert [d.message for d in diagnostics] == [
            "out parameter 'result' should end in '_out'",
            "inout parameter 'uv' should end in '_out'",
        ]
        assert [d.suggested_fix for d in diagnostics] == ["result_out", "uv_out"]

    def test_prototype_without_definition(self, run_check):
        diagnostics = run_check(check_out_parameter_suffix, "void f(out float result);")
        assert len(diagnostics) == 1

    def test_prototype_with_definition_reported_once(self, run_check):
        source = "void f(out float r);\nvoid f(out float result) {}"
        diagnostics = run_check(check_out_parameter_suffix, source)
        assert len(diagnostics) == 1
        assert diagnostics[0].span.start_line == 2


class TestDeclarationOrder:
    """Tests for the declaration-order rule."""

    def test_canonical_order(self, run_check):
        source = """
        in vec2 in_uv;
        out vec4 out_color;
        layout(input_attachment_index = 0, binding = 0) uniform subpassInput g_albedo;
        uniform sampler2D albedo_tex;
        layout(push_constant) uniform PushData { mat4 model; } pc;
        layout(binding = 1) uniform Camera { mat4 view_proj; } camera;
        uniform float exposure;
        """
        assert run_check(check_declaration_order, source) == []

    def test_output_before_input(self, run_check):
        source = "out vec4 out_color;\nin vec2 in_uv;"
        diagnostics = run_check(check_declaration_order, source)
        assert len(diagnostics) == 1
        diagnostic = diagnostics[0]
        assert diagnostic.rule_id == "declaration-order"
        assert diagnostic.span.start_line == 1
        assert diagnostic.message == (
            "declaration out of canonical order: stage output 'out_color' "
            "must come after stage input 'in_uv'"
        )

    def test_each_offender_reported_once(self, run_check):
        source = (
            "layout(binding = 1) uniform Camera { mat4 view_proj; } camera;\n"
            "uniform sampler2D albedo_tex;\n"
            "in vec2 in_uv;\n"
            "in vec3 in_normal;\n"
        )
        diagnostics = run_check(check_declaration_order, source)
        assert [d.span.start_line for d in diagnostics] == [1, 2]
        assert all("stage input 'in_uv'" in d.message for d in diagnostics)

    def test_interface_block_and_loose_uniform(self, run_check):
        source = "uniform float exposure;\nout VertexData { vec3 normal; } vs_out;"
        diagnostics = run_check(check_declaration_order, source)
        assert len(diagnostics) == 1
        assert "'exposure'" in diagnostics[0].message
        assert "'VertexData'" in diagnostics[0].message

    def test_unordered_declarations_ignored(self, run_check):
        source = (
            "const int N = 4;\n"
            "struct Light { vec3 p; };\n"
            "in vec2 in_uv;\n"
            "float f() { return 1.0; }\n"
            "out vec4 out_color;\n"
        )
        assert run_check(check_declaration_order, source) == []
