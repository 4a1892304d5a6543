"""Realistic CGP compiler diagnostics modelled on the area/density example crates."""

from __future__ import annotations

from typing import Any, Dict, Tuple

from tests._fixtures.diagnostics import child, diagnostic, has_field, span

INTRODUCED = "unsatisfied trait bound introduced here"
UNSATISFIED = "unsatisfied trait bound"
COMPONENT_LINE = "        AreaCalculatorComponent,"


def _use_site(file_name: str, line: int) -> Dict[str, Any]:
    return span(file_name, line, 9, 32, text=COMPONENT_LINE, label=UNSATISFIED)


def _check_bound(file_name: str, line: int) -> Dict[str, Any]:
    return child(
        "required by a bound in `CanUseRectangle`",
        spans=[
            span(
                file_name,
                line,
                5,
                20,
                text="    CanUseRectangle for Rectangle {",
                label="required by this bound in `CanUseRectangle`",
            )
        ],
    )


def _can_use_note() -> Dict[str, Any]:
    return child("required for `Rectangle` to implement `CanUseComponent<AreaCalculatorComponent>`")


def _introduced_at(file_name: str, line: int, text: str, start: int, end: int) -> Dict[str, Any]:
    """The secondary span rustc labels with "unsatisfied trait bound introduced here"."""
    return span(file_name, line, start, end, text=text, label=INTRODUCED, is_primary=False)


def _has_rectangle_fields(file_name: str, line: int) -> Dict[str, Any]:
    return child(
        "required for `Rectangle` to implement `HasRectangleFields`",
        spans=[
            span(file_name, line, 1, 19, text="#[cgp_auto_getter]"),
            _introduced_at(file_name, line, "#[cgp_auto_getter]", 1, 19),
        ],
    )


def _provider_note(file_name: str, line: int, provider: str) -> Dict[str, Any]:
    """``line`` holds the where-clause bound; the impl header two lines above is the primary span."""
    return child(
        f"required for `{provider}` to implement `IsProviderFor<AreaCalculatorComponent, Rectangle>`",
        spans=[
            span(file_name, line - 2, 1, 17 + len(provider), text=f"#[cgp_impl(new {provider})]"),
            _introduced_at(file_name, line, "    Self: HasRectangleFields,", 11, 29),
        ],
    )


def base_area() -> Dict[str, Any]:
    """`height` is missing from `Rectangle`, which derives ``HasField`` for `width`."""
    file_name = "examples/src/base_area.rs"
    return diagnostic(
        "the trait bound `Rectangle: CanUseComponent<AreaCalculatorComponent>` is not satisfied",
        spans=[_use_site(file_name, 41)],
        children=[
            child(
                f"the trait `{has_field('height')}` is not implemented for `Rectangle`\n"
                f"but trait `{has_field('width')}` is implemented for it",
                level="help",
                spans=[span(file_name, 26, 1, 21, text="pub struct Rectangle {", is_primary=True)],
            ),
            _has_rectangle_fields(file_name, 13),
            _provider_note(file_name, 20, "RectangleArea"),
            _can_use_note(),
            _check_bound(file_name, 40),
        ],
        rendered=(
            "error[E0277]: the trait bound `Rectangle: CanUseComponent<AreaCalculatorComponent>` "
            "is not satisfied\n  --> examples/src/base_area.rs:41:9\n"
        ),
    )


def base_area_missing_derive() -> Dict[str, Any]:
    """`Rectangle` has no ``HasField`` implementation at all."""
    file_name = "examples/src/base_area_2.rs"
    return diagnostic(
        "the trait bound `Rectangle: CanUseComponent<AreaCalculatorComponent>` is not satisfied",
        spans=[_use_site(file_name, 41)],
        children=[
            child(
                f"the trait `{has_field('width')}` is not implemented for `Rectangle`",
                level="help",
                spans=[span(file_name, 24, 1, 21, text="pub struct Rectangle {")],
            ),
            _has_rectangle_fields(file_name, 13),
            _provider_note(file_name, 20, "RectangleArea"),
            _can_use_note(),
            _check_bound(file_name, 40),
        ],
    )


def scaled_area() -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Two raw diagnostics for one failure behind `ScaledArea<RectangleArea>`."""
    file_name = "examples/src/scaled_area.rs"
    outer = diagnostic(
        "the trait bound `RectangleArea: AreaCalculator<Rectangle>` is not satisfied",
        spans=[_use_site(file_name, 57)],
        children=[
            child(
                "the trait `AreaCalculator<Rectangle>` is not implemented for `RectangleArea`",
                level="help",
                spans=[span(file_name, 19, 1, 30, text="#[cgp_impl(new RectangleArea)]")],
            ),
            _provider_note(file_name, 36, "ScaledArea<RectangleArea>"),
            _can_use_note(),
            _check_bound(file_name, 56),
        ],
    )
    inner = diagnostic(
        "the trait bound `Rectangle: CanUseComponent<AreaCalculatorComponent>` is not satisfied",
        spans=[_use_site(file_name, 57)],
        children=[
            child(
                f"the trait `{has_field('height')}` is not implemented for `Rectangle`\n"
                f"but trait `{has_field('width')}` is implemented for it",
                level="help",
                spans=[span(file_name, 42, 1, 21, text="pub struct Rectangle {")],
            ),
            _has_rectangle_fields(file_name, 13),
            _provider_note(file_name, 20, "RectangleArea"),
            child("1 redundant requirement hidden"),
            _can_use_note(),
            _check_bound(file_name, 56),
        ],
    )
    return outer, inner


def density() -> Dict[str, Any]:
    """A provider chain through the `CanCalculateArea` consumer trait."""
    file_name = "examples/src/density.rs"
    return diagnostic(
        "the trait bound `RectangleArea: AreaCalculator<Rectangle>` is not satisfied",
        spans=[
            span(
                file_name,
                64,
                9,
                35,
                text="        DensityCalculatorComponent,",
                label=UNSATISFIED,
            )
        ],
        children=[
            child(
                "the trait `AreaCalculator<Rectangle>` is not implemented for `RectangleArea`",
                level="help",
            ),
            _provider_note(file_name, 20, "RectangleArea"),
            child(
                "required for `Rectangle` to implement `CanCalculateArea`",
                spans=[
                    span(file_name, 3, 1, 33, text="#[cgp_component(AreaCalculator)]"),
                    _introduced_at(file_name, 3, "#[cgp_component(AreaCalculator)]", 1, 33),
                ],
            ),
            child(
                "required for `DensityFromMassField` to implement "
                "`IsProviderFor<DensityCalculatorComponent, Rectangle>`",
                spans=[
                    span(file_name, 50, 1, 38, text="#[cgp_impl(new DensityFromMassField)]"),
                    _introduced_at(file_name, 52, "    Self: CanCalculateArea + HasMass,", 11, 27),
                ],
            ),
            child("required for `Rectangle` to implement `CanUseComponent<DensityCalculatorComponent>`"),
            _check_bound(file_name, 63),
        ],
    )


def check_trait_failure(*notes: Dict[str, Any]) -> Dict[str, Any]:
    """The `check_components!` error rustc reports beside `base_area` at the same use site."""
    file_name = "examples/src/base_area.rs"
    return diagnostic(
        "the trait bound `Rectangle: CanUseRectangle` is not satisfied",
        spans=[_use_site(file_name, 41)],
        children=[
            *notes,
            _check_bound(file_name, 40),
            child(
                "this error originates in the macro `check_components` "
                "(in Nightly builds, run with -Z macro-backtrace for more info)"
            ),
        ],
    )


def type_mismatch() -> Dict[str, Any]:
    """A plain E0308 with no CGP involvement."""
    return diagnostic(
        "mismatched types",
        code="E0308",
        spans=[span("src/main.rs", 4, 18, 25, text='    let x: u32 = "hello";', label="expected `u32`, found `&str`")],
        children=[child("expected type `u32`\n   found reference `&'static str`")],
        rendered=(
            "error[E0308]: mismatched types\n"
            " --> src/main.rs:4:18\n"
            "  |\n"
            '4 |     let x: u32 = "hello";\n'
            "  |            ---   ^^^^^^^ expected `u32`, found `&str`\n"
            "  |            |\n"
            "  |            expected due to this\n\n"
        ),
    )


__all__ = [
    "base_area",
    "base_area_missing_derive",
    "check_trait_failure",
    "density",
    "scaled_area",
    "type_mismatch",
]
