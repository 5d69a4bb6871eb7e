"""
Tests for the generated C dispatch code and its advisory warnings.
"""

import pytest

from dispatch_generator import DispatchGenerator, generate_dispatch, write_output
from schedule_config import GeneratorConfig
from schedule_diagnostics import ScheduleError
from schedule_model import ScheduleContext, Task


def _tick_body(code: str, tickno: int, prefix: str = "tick") -> str:
    """Return the text of one generated tick function."""
    start = code.index(f"static __interrupt__ void {prefix}_{tickno} (void)\n{{")
    end = code.index("\n}\n", start)
    return code[start:end]


class TestLayout:
    def test_sections_in_order(self, schedule):
        ctx = schedule("foo 1 0.1")
        ctx.includes.append("wpc.h")
        code = generate_dispatch(ctx)
        order = [
            "/* Automatically generated by gensched */",
            "void (*tick_function) (void);",
            "unsigned char tick_divider;",
            '#include "wpc.h"',
            "static __interrupt__ void tick_0 (void);",
            "static __interrupt__ void tick_0 (void)\n{",
            "void tick_driver (void)",
            "void tick_init (void)",
        ]
        positions = [code.index(text) for text in order]
        assert positions == sorted(positions)

    def test_one_function_per_tick(self, schedule):
        code = generate_dispatch(schedule("foo 1 0.1"))
        for n in range(8):
            assert f"static __interrupt__ void tick_{n} (void);" in code
        assert "tick_8" not in code

    def test_fastvar_attribute(self, schedule):
        code = generate_dispatch(schedule("foo 1 0.1"))
        assert '__attribute__((section ("direct"))) void (*tick_function) (void);' in code

    def test_prefix(self, schedule):
        ctx = schedule("foo 1 0.1", prefix="rtt")
        code = generate_dispatch(ctx)
        assert "void rtt_driver (void)" in code
        assert "rtt_function = rtt_1;" in code
        assert "tick_" not in code

    def test_driver_and_init(self, schedule):
        code = generate_dispatch(schedule("foo 1 0.1"))
        assert 'asm ("jmp\\t[_tick_function]");' in code
        assert "(*tick_function) ();" in code
        assert "tick_function = tick_0;\n   tick_divider = 0;" in code

    def test_empty_schedule_still_has_tick_0(self):
        ctx = ScheduleContext(GeneratorConfig(max_ticks=1))
        code = generate_dispatch(ctx)
        assert "static __interrupt__ void tick_0 (void);" in code
        assert "tick_function = tick_0;" in code


class TestTickBodies:
    def test_round_robin(self, schedule):
        code = generate_dispatch(schedule("foo 1 0.1"))
        for n in range(8):
            assert f"tick_function = tick_{(n + 1) % 8};" in _tick_body(code, n)

    def test_single_tick_does_not_chain(self, schedule):
        code = generate_dispatch(schedule("foo 1 0.1", max_ticks=1))
        assert "tick_function = tick_0;" not in _tick_body(code, 0)

    def test_out_of_line_call(self, schedule):
        body = _tick_body(generate_dispatch(schedule("foo 1 0.1")), 3)
        assert "\textern void foo (void);\n\tfoo (); /* 0.1 interrupts / 195.2 cycles */" in body

    def test_inline_call(self, schedule):
        body = _tick_body(generate_dispatch(schedule("!foo 1 0.1")), 0)
        assert "foo ();" in body
        assert "extern" not in body

    def test_tick_load_comment(self, schedule):
        body = _tick_body(generate_dispatch(schedule("a 1 0.3\nb 8 0.25")), 0)
        assert "/* 0.55 interrupts / 1073.6 cycles */" in body

    def test_divider_gate(self, schedule):
        code = generate_dispatch(schedule("bar 16 0.5", max_ticks=8))
        body = _tick_body(code, 7)
        assert "if (!(tick_divider & 1))\n\t{\n\t\textern void bar (void);\n\t\tbar ();" in body
        assert "tick_divider++;" in body
        assert "bar" not in _tick_body(code, 0)

    def test_no_divider_increment_without_dividers(self, schedule):
        code = generate_dispatch(schedule("foo 1 0.1"))
        assert "tick_divider++;" not in code

    def test_divider_increment_only_in_last_tick(self, schedule):
        code = generate_dispatch(schedule("a 1 0.1\nbar 32 0.1"))
        assert code.count("tick_divider++;") == 1
        assert "tick_divider++;" in _tick_body(code, 7)

    def test_equal_dividers_share_a_gate(self, schedule):
        code = generate_dispatch(schedule("a 16 0.1\nb 16 0.1\nc 32 0.1"))
        body = _tick_body(code, 7)
        assert body.count("if (!(tick_divider & 1))") == 1
        assert body.count("if (!(tick_divider & 3))") == 1
        gate = body.index("& 1))")
        assert gate < body.index("a ();") < body.index("b ();") < body.index("& 3))")

    def test_pre_unrolled_variants(self, schedule):
        code = generate_dispatch(schedule("disp/2 4 0.1"))
        assert "disp_0 ();" in _tick_body(code, 0)
        assert "disp_1 ();" in _tick_body(code, 4)
        assert "disp ();" not in code


class TestVariantNames:
    @pytest.mark.parametrize(
        "tickno,expected",
        [(0, "disp_0"), (2, "disp_1"), (4, "disp_2"), (6, "disp_0")],
    )
    def test_variant_for_tick(self, tickno, expected):
        task = Task("disp", 2, 0.1, already_unrolled_count=3)
        assert task.variant_name(tickno) == expected

    def test_not_unrolled(self):
        assert Task("foo", 2, 0.1).variant_name(5) == "foo"


class TestWarnings:
    def test_should_be_inline(self, schedule, capsys):
        ctx = schedule("small 1 0.01")
        generate_dispatch(ctx)
        assert "warning: small should be inline, only takes 19 cycles" in capsys.readouterr().err

    def test_should_be_inline_counts_call_overhead(self, schedule, capsys):
        ctx = schedule("small 1 0.01")
        generate_dispatch(ctx)
        assert "(plus 12 for call and return)" in capsys.readouterr().err

        ctx = schedule("small 1 0.01", cycles_per_call=10, cycles_per_return=10)
        generate_dispatch(ctx)
        assert "(plus 20 for call and return)" in capsys.readouterr().err

    def test_should_not_be_inline(self, schedule, capsys):
        ctx = schedule("!big 1 300c")
        generate_dispatch(ctx)
        assert "warning: big should not be inline" in capsys.readouterr().err

    def test_inline_used_twice_is_fine(self, schedule):
        ctx = schedule("!big 4 300c")
        generate_dispatch(ctx)
        assert ctx.warnings == []

    def test_overloaded_tick_still_generates(self, schedule, capsys):
        ctx = schedule("x 2 0.9\ny 2 0.5\nz 2 0.6")
        code = generate_dispatch(ctx)
        assert "z ();" in _tick_body(code, 0)
        err = capsys.readouterr().err
        for n in (0, 2, 4, 6):
            assert f"warning: tick {n} takes too long" in err
        assert "tick 1 takes too long" not in err

    def test_clean_schedule_has_no_warnings(self, schedule):
        ctx = schedule("foo 1 0.1\nbar 2 0.2")
        generate_dispatch(ctx)
        assert ctx.warnings == []


class TestWriteOutput:
    def test_stdout(self, capsys):
        write_output("int x;\n", None)
        assert capsys.readouterr().out == "int x;\n"

    def test_file(self, tmp_path):
        path = tmp_path / "out.c"
        write_output("int x;\n", str(path))
        assert path.read_text() == "int x;\n"

    def test_unwritable(self, tmp_path):
        with pytest.raises(ScheduleError, match="cannot open"):
            write_output("int x;\n", str(tmp_path / "missing" / "out.c"))

    def test_render_twice_is_stable(self, schedule):
        generator = DispatchGenerator(schedule("foo 1 0.1\nbar 16 0.2"))
        assert generator.render() == generator.render()
