"""
Generative Art Module
=====================

Turns an integer seed into an RGBA image by way of a random expression tree.

Pipeline:
    seed -> SeededRandom -> ExpressionSynthesizer -> ExpressionNode
         -> compile_expression -> CompiledExpression -> render -> RGBA bytes

Key components:
    - Operation vocabulary: tensor implementations of every production.
    - DEFAULT_GRAMMAR: the Vector/Number grammar the gallery draws from.
    - ExpressionSynthesizer: depth-bounded random tree builder.
    - CompiledExpression: RPN stack machine over float64 tensors.
    - ArtGenerator: samples a compiled expression over a pixel grid.

Every pixel is evaluated at once as a (height, width) tensor. The result is
identical to evaluating pixel by pixel, because no operation mixes values
from different pixels.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple, Union

import torch

from framework import BudgetExhaustedError, ExpressionNode, Production, RandomSource
from grammar import Grammar
from prng import SeededRandom
from timing_utils import time_it

logger = logging.getLogger(__name__)

VECTOR = "Vector"
NUMBER = "Number"

ROOT_TYPE = VECTOR
DEFAULT_MAX_DEPTH = 5
# Offsets both coordinates so that the origin never lands exactly on a
# singularity such as x / y.
EPSILON = 1e-5
DTYPE = torch.float64

# --- Operation Vocabulary ---
# Terminals receive the coordinate tensors (plus any baked parameters);
# every other operation receives its evaluated operands. Numbers are
# tensors shaped like the coordinates, vectors add a trailing dim of 3.
def n_x(x: torch.Tensor, y: torch.Tensor) -> torch.Tensor: return x
def n_y(x: torch.Tensor, y: torch.Tensor) -> torch.Tensor: return y
def n_constant(x: torch.Tensor, y: torch.Tensor, value: float) -> torch.Tensor:
    return torch.full_like(x, value)
def n_add(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor: return a + b
def n_sub(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor: return a - b
def n_mul(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor: return a * b
def n_div(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor: return a / b
def n_mod(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
    """Floored modulo, ((a % b) + b) % b with truncated %: mod(-1, 3) == 2, mod(x, inf) is nan."""
    return torch.fmod(torch.fmod(a, b) + b, b)
def n_sin(a: torch.Tensor) -> torch.Tensor: return torch.sin(a)
def n_sqrt(a: torch.Tensor) -> torch.Tensor: return torch.sqrt(a)

def lerp(a: torch.Tensor, b: torch.Tensor, t: torch.Tensor) -> torch.Tensor:
    return (b - a) * t + a
def v_vec3(r: torch.Tensor, g: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
    return torch.stack(torch.broadcast_tensors(r, g, b), dim=-1)
def v_mix(a: torch.Tensor, b: torch.Tensor, t: torch.Tensor) -> torch.Tensor:
    return lerp(a, b, t.unsqueeze(-1))

def sample_constant(rng: RandomSource) -> Tuple[float]:
    """Uniform constant in [-1, 1), drawn once at synthesis time."""
    return (rng.next() * 2 - 1,)

# --- Reference Grammar ---
# Order matters: the synthesizer indexes into each type's production list,
# so reordering changes which image a seed produces.
REFERENCE_PRODUCTIONS = (
    Production("vec3", VECTOR, (NUMBER, NUMBER, NUMBER),
               render=lambda r, g, b: f"[{r}, {g}, {b}]", apply=v_vec3),
    Production("mix", VECTOR, (VECTOR, VECTOR, NUMBER),
               render=lambda a, b, t: f"mix({a}, {b}, {t})", apply=v_mix),
    Production("x", NUMBER, (), render=lambda: "x", apply=n_x),
    Production("y", NUMBER, (), render=lambda: "y", apply=n_y),
    Production("rand", NUMBER, (), render=lambda value: value, apply=n_constant,
               sample=sample_constant),
    Production("add", NUMBER, (NUMBER, NUMBER), render=lambda a, b: f"({a} + {b})", apply=n_add),
    Production("sub", NUMBER, (NUMBER, NUMBER), render=lambda a, b: f"({a} - {b})", apply=n_sub),
    Production("mul", NUMBER, (NUMBER, NUMBER), render=lambda a, b: f"({a} * {b})", apply=n_mul),
    Production("div", NUMBER, (NUMBER, NUMBER), render=lambda a, b: f"({a} / {b})", apply=n_div),
    Production("mod", NUMBER, (NUMBER, NUMBER), render=lambda a, b: f"mod({a}, {b})", apply=n_mod),
    Production("sin", NUMBER, (NUMBER,), render=lambda a: f"sin({a})", apply=n_sin),
    Production("sqrt", NUMBER, (NUMBER,), render=lambda a: f"sqrt({a})", apply=n_sqrt),
)

DEFAULT_GRAMMAR = Grammar(REFERENCE_PRODUCTIONS)


# --- Tree Synthesis ---
class ExpressionSynthesizer:
    """
    Builds random expression trees that always fit a depth budget.

    At each node only productions whose steps-to-terminal is strictly below
    the remaining budget are eligible. Every argument of a chosen production
    can therefore still be completed with one less unit of budget, so the
    recursion cannot run dry once the root budget is large enough.
    """
    def __init__(self, grammar: Grammar = DEFAULT_GRAMMAR):
        self.grammar = grammar

    def candidates(self, type_name: str, depth_budget: int) -> Tuple[Production, ...]:
        return tuple(
            p for p in self.grammar.productions_for(type_name)
            if self.grammar.production_steps(p) < depth_budget
        )

    @time_it
    def synthesize(self, type_name: str, depth_budget: int, rng: RandomSource) -> ExpressionNode:
        """
        Synthesizes one expression of `type_name`.

        Args:
            type_name (str): Type of the root node.
            depth_budget (int): Maximum nesting depth of the result.
            rng (RandomSource): Stream consumed in pre-order: one draw to pick
                each production, then that production's parameters, then its
                arguments left to right.

        Returns:
            ExpressionNode: The synthesized tree, with depth <= depth_budget.

        Raises:
            BudgetExhaustedError: If depth_budget < steps_to_terminal(type_name) + 1.
        """
        required = self.grammar.min_depth_budget(type_name)
        if depth_budget < required:
            raise BudgetExhaustedError(
                f"Depth budget {depth_budget} is too small for type '{type_name}' "
                f"(needs at least {required})"
            )
        return self._build(type_name, depth_budget, rng)

    def _build(self, type_name: str, depth_budget: int, rng: RandomSource) -> ExpressionNode:
        options = self.candidates(type_name, depth_budget)
        if not options:
            raise BudgetExhaustedError(
                f"No production of type '{type_name}' fits depth budget {depth_budget}"
            )
        production = options[int(rng.next() * len(options))]
        params = tuple(production.sample(rng)) if production.sample else ()
        children = tuple(self._build(arg, depth_budget - 1, rng) for arg in production.args)
        return ExpressionNode(production, children, params)


# --- Compilation ---
@dataclass(frozen=True)
class Instruction:
    name: str
    apply: Callable[..., torch.Tensor]
    arity: int
    params: Tuple[float, ...] = ()


class CompiledExpression:
    """
    Stack-machine program derived from an expression tree.

    The program is a post-order (RPN) list of instructions. It keeps no
    reference to the tree it came from.
    """
    def __init__(self, program: Sequence[Instruction], output_type: str, device: Optional[torch.device] = None):
        self.program = tuple(program)
        self.output_type = output_type
        self.device = device or torch.device('cpu')

    def __len__(self) -> int:
        return len(self.program)

    def evaluate(self, x: Any, y: Any) -> torch.Tensor:
        """
        Evaluates the program on coordinate tensors.

        Non-finite results (division by zero, sqrt of a negative) propagate
        as inf/nan; sanitizing them is left to the renderer.
        """
        x, y = torch.broadcast_tensors(
            torch.as_tensor(x, dtype=DTYPE, device=self.device),
            torch.as_tensor(y, dtype=DTYPE, device=self.device),
        )
        stack = []
        for instruction in self.program:
            if instruction.arity == 0:
                value = instruction.apply(x, y, *instruction.params)
            else:
                operands = stack[-instruction.arity:]
                del stack[-instruction.arity:]
                value = instruction.apply(*instruction.params, *operands)
            stack.append(value)
        if len(stack) != 1:
            raise RuntimeError(f"Malformed program left {len(stack)} values on the stack")
        return stack[0]

    def __call__(self, x: Any, y: Any) -> Union[Tuple[Any, ...], Any]:
        """
        Evaluates at (x, y).

        Plain numbers in give plain floats out; tensors in give tensors out.
        Vector-valued programs return one value per component.
        """
        scalar_input = not (torch.is_tensor(x) or torch.is_tensor(y))
        result = self.evaluate(x, y)
        input_dims = torch.broadcast_shapes(torch.as_tensor(x).shape, torch.as_tensor(y).shape)
        if result.dim() > len(input_dims):
            channels = result.unbind(-1)
            return tuple(c.item() for c in channels) if scalar_input else channels
        return result.item() if scalar_input else result


@time_it
def compile_expression(expression: ExpressionNode, device: Optional[torch.device] = None) -> CompiledExpression:
    program = [
        Instruction(node.production.name, node.production.apply, len(node.children), node.params)
        for node in expression.to_rpn()
    ]
    return CompiledExpression(program, expression.type, device=device)


# --- Pixel Evaluation ---
def check_dimensions(width: int, height: int):
    for name, value in (('width', width), ('height', height)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")


def coordinate_grid(width: int, height: int, device: Optional[torch.device] = None) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Normalized pixel coordinates, each shaped (height, width).

    Column px maps to (px / width) * 2 - 1 and row py to (py / height) * 2 - 1,
    covering [-1, 1) on both axes.
    """
    xs = torch.arange(width, dtype=DTYPE, device=device) / width * 2 - 1
    ys = torch.arange(height, dtype=DTYPE, device=device) / height * 2 - 1
    Y, X = torch.meshgrid(ys, xs, indexing='ij')
    return X, Y


def to_rgba_bytes(channels: Sequence[Any], width: int, height: int) -> bytes:
    """
    Converts three channel planes into row-major RGBA8 bytes.

    Each channel is made absolute and scaled by 255. NaN becomes 0 and
    +inf becomes 255; values are clamped to [0, 255] and rounded half to even.
    Alpha is always 255.
    """
    if torch.is_tensor(channels):
        raise ValueError(f"Expected 3 color channels, got a single tensor of shape {tuple(channels.shape)}")
    if len(channels) != 3:
        raise ValueError(f"Expected 3 color channels, got {len(channels)}")
    planes = [torch.broadcast_to(torch.as_tensor(c, dtype=DTYPE), (height, width)) for c in channels]
    rgb = torch.abs(torch.stack(planes, dim=-1)) * 255
    rgb = torch.nan_to_num(rgb, nan=0.0, posinf=255.0, neginf=0.0)
    rgb = torch.round(torch.clamp(rgb, 0.0, 255.0)).to(torch.uint8)
    alpha = torch.full((height, width, 1), 255, dtype=torch.uint8, device=rgb.device)
    rgba = torch.cat([rgb, alpha], dim=-1)
    return rgba.cpu().numpy().tobytes()


@time_it
def render(compiled_fn: Callable[[Any, Any], Sequence[Any]], width: int, height: int,
           epsilon: float = EPSILON, device: Optional[torch.device] = None) -> bytes:
    """
    Samples `compiled_fn` over a width x height grid.

    Returns:
        bytes: width * height * 4 bytes, RGBA, rows top to bottom.
    """
    check_dimensions(width, height)
    X, Y = coordinate_grid(width, height, device=device)
    channels = compiled_fn(X + epsilon, Y + epsilon)
    return to_rgba_bytes(channels, width, height)


class ArtGenerator:
    """
    Seed-to-image pipeline.

    Holds the grammar, root type and depth budget; every call builds a fresh
    random source from the seed so renders never share random state.

    Args:
        grammar: Production table to synthesize from.
        root_type: Type of the expression's root; must evaluate to a 3-vector,
            otherwise rendering raises ValueError.
        max_depth: Depth budget for the root call.
        epsilon: Offset added to both coordinates before evaluation.
        device: Torch device used for evaluation (CPU by default).
    """
    def __init__(self, grammar: Grammar = DEFAULT_GRAMMAR, root_type: str = ROOT_TYPE,
                 max_depth: int = DEFAULT_MAX_DEPTH, epsilon: float = EPSILON,
                 device: Optional[Union[str, torch.device]] = None):
        self.grammar = grammar
        self.root_type = root_type
        self.max_depth = max_depth
        self.epsilon = epsilon
        self.device = torch.device(device) if device is not None else torch.device('cpu')
        self.synthesizer = ExpressionSynthesizer(grammar)

        required = grammar.min_depth_budget(root_type)
        if max_depth < required:
            raise BudgetExhaustedError(
                f"max_depth={max_depth} cannot synthesize '{root_type}'; use at least {required}"
            )

    def synthesize(self, seed: int) -> ExpressionNode:
        rng = SeededRandom(seed)
        expression = self.synthesizer.synthesize(self.root_type, self.max_depth, rng)
        logger.debug(f"Seed {seed} -> {expression.to_string()}")
        return expression

    def draw(self, seed: int, width: int, height: int) -> Tuple[ExpressionNode, bytes]:
        """Synthesizes, compiles and renders; returns the tree with the pixels."""
        check_dimensions(width, height)
        expression = self.synthesize(seed)
        compiled = compile_expression(expression, device=self.device)
        pixels = render(compiled, width, height, epsilon=self.epsilon, device=self.device)
        return expression, pixels

    def generate(self, seed: int, width: int, height: int) -> bytes:
        return self.draw(seed, width, height)[1]


DEFAULT_GENERATOR = ArtGenerator()

def generate(seed: int, width: int, height: int) -> bytes:
    """Renders the image for `seed` with the default grammar and settings."""
    return DEFAULT_GENERATOR.generate(seed, width, height)
