# cfront

`cfront` holds the front-end pieces of a small C11 compiler. All of it is pure Python
and has no dependencies.

- `cfront.tokenize` splits C source into a linked list of tokens. It handles pp-numbers,
  string and character literals with every prefix (`u8`, `u`, `U`, `L`), identifiers
  that contain Unicode characters, punctuators, comments and line tracking. It also
  provides the input clean-up steps `canonicalize_newline`, `remove_backslash_newline`
  and `convert_universal_chars`, plus `read_file`, `tokenize_file` and
  `get_input_files()`.
- `cfront.literals` decodes escape sequences and narrow, UTF-16 and UTF-32 string
  literals. It reads character literals, recognises keywords (`is_keyword`) and turns
  pp-numbers into integer or floating constants with C's type rules for suffixes and
  sizes (`convert_pp_int`, `convert_pp_number`).
- `cfront.unicode` covers UTF-8 encoding and decoding, the C11 identifier character
  ranges (`is_ident1`, `is_ident2`) and the column widths used to place error carets.
- `cfront.source` defines `SourceFile`, `Token`, `TokenKind` and `CompileError`, along
  with the diagnostic helpers `format_error`, `error_at`, `error_tok` and `warn_tok`.
- `cfront.typesys` provides C types (`Type`, `TypeKind`, `Member`) and the built-in types
  `ty_int`, `ty_ulong`, `ty_double` and the rest. It has constructors such as
  `pointer_to`, `array_of`, `func_type`, `vla_of`, `enum_type` and `struct_type`, plus
  `is_compatible`. It also defines syntax-tree nodes (`Node`, `NodeKind`, `Obj`) and
  `add_type`, which infers node types and inserts casts following the usual arithmetic
  conversions.

## Installation

```
pip install .
```

To install with test dependencies and run the tests:

```
pip install .[test]
pytest
```

## Usage

Tokenize a file and walk its tokens:

```python
from cfront.tokenize import tokenize_file, convert_pp_tokens

tok = tokenize_file("hello.c")      # None if the file cannot be read
convert_pp_tokens(tok)              # mark keywords, convert pp-numbers
for t in tok:
    print(t.kind.name, t.text(), t.line_no)
```

`tokenize_file` strips a UTF-8 byte-order mark and then runs `canonicalize_newline`,
`remove_backslash_newline` and `convert_universal_chars` before tokenizing. Pass `"-"`
to read standard input. The token list always ends with a `TokenKind.EOF` token.

`Token` has helpers for a parser: `equal(op)`, `skip(op)` (raises if the token is not
`op`), and `consume(op)`, which returns `(matched, rest)`.

Work with types:

```python
from cfront import typesys
from cfront.typesys import pointer_to, array_of, is_compatible

arr = array_of(typesys.ty_int, 4)
assert arr.size == 16
assert is_compatible(pointer_to(typesys.ty_int), pointer_to(typesys.ty_int))
assert not is_compatible(typesys.ty_int, typesys.ty_uint)
```

## Errors

Errors in the source raise `cfront.source.CompileError`. Examples are an unclosed string
or comment, an invalid token, a bad escape, an invalid numeric constant, or a type error
found by `add_type`. `str(exc)` gives a report that starts with `file:line: ` and the
source line, followed by a line with a caret under the offending position and the message.
The short message alone is in `exc.message`. `warn_tok` writes the same kind of report
to standard error and returns it without raising.

`cfront.unicode.decode_utf8` raises `UnicodeDecodeError` on malformed input.

## What it does not do

`cfront` has no preprocessor: `#include`, `#define` and other directives are tokenized
but never executed. It has no parser that builds `Node` trees from tokens and no code
generator. It provides no command-line program. These modules are the pieces such a
compiler is built from, and not a compiler you can run.