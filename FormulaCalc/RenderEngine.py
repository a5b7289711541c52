# RenderEngine.py
"""""
Display rendering for formulas.

render() turns the raw formula text into markup with superscripts for
exponents and subscripts for indexed identifiers:

    (a+b)^2  ->  (a+b)<sup>2</sup>
    x^3      ->  x<sup>3</sup>
    x_1^2    ->  x<sub>1</sub><sup>2</sup>

It works on the lenient token stream, is a pure function of the text and never
raises: spans it does not recognize (unbalanced brackets, "2^3", "a^-1", ...)
are passed through literally. It does not depend on evaluation.
"""""

import html
import re

from . import MathEngine as MathEngine

SUBSCRIPT_PATTERN = re.compile(r"(\w)_(\d+)", re.ASCII)

SUPERSCRIPT_DIGITS = str.maketrans("0123456789", "⁰¹²³⁴⁵⁶⁷⁸⁹")
SUBSCRIPT_DIGITS = str.maketrans("0123456789", "₀₁₂₃₄₅₆₇₈₉")


def html_escape(text):
    return html.escape(text, quote=False)


# markup name -> (plain text, superscript, subscript)
MARKUPS = {
    "html": (html_escape,
             lambda digits: f"<sup>{digits}</sup>",
             lambda digits: f"<sub>{digits}</sub>"),
    "unicode": (lambda text: text,
                lambda digits: digits.translate(SUPERSCRIPT_DIGITS),
                lambda digits: digits.translate(SUBSCRIPT_DIGITS)),
}


def render_identifier(name, markup="html"):
    plain, _, subscript = MARKUPS[markup]
    pieces = []
    position = 0
    for match in SUBSCRIPT_PATTERN.finditer(name):
        pieces.append(plain(name[position:match.start(2) - 1]))
        pieces.append(subscript(match.group(2)))
        position = match.end()
    pieces.append(plain(name[position:]))
    return "".join(pieces)


def render(formula, markup="html"):
    """Render formula for display. markup is "html" (default) or "unicode"."""
    plain, superscript, _ = MARKUPS[markup]
    tokens = MathEngine.tokenize(formula, strict=False)
    pieces = []
    position = 0
    open_groups = 0
    # End offset of the last token that can carry an exponent, else None
    exponent_anchor = None
    b = 0

    while b < len(tokens):
        token = tokens[b]

        # Text between tokens (whitespace) is kept as typed
        pieces.append(plain(formula[position:token.start]))
        position = token.end

        if token.kind == MathEngine.CARET and exponent_anchor == token.start and b + 1 < len(tokens):
            exponent = tokens[b + 1]
            if exponent.kind == MathEngine.NUMBER and exponent.text.isdigit() and exponent.start == token.end:
                pieces.append(superscript(exponent.text))
                position = exponent.end
                exponent_anchor = None
                b += 2
                continue

        if token.kind == MathEngine.IDENT:
            pieces.append(render_identifier(token.text, markup))
            exponent_anchor = token.end
        elif token.kind == MathEngine.LPAREN:
            open_groups += 1
            pieces.append(plain(token.text))
            exponent_anchor = None
        elif token.kind == MathEngine.RPAREN:
            # Only a ')' that closes a group can take an exponent
            exponent_anchor = token.end if open_groups > 0 else None
            open_groups = max(open_groups - 1, 0)
            pieces.append(plain(token.text))
        else:
            pieces.append(plain(token.text))
            exponent_anchor = None
        b += 1

    pieces.append(plain(formula[position:]))
    return "".join(pieces)
