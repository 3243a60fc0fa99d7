# fmitf

`fmitf` is the analysis core for a small language of *chopped transactions*.
A program in this language declares nodes and the tables stored on each node.
Each function is a sequence of *hops*. Every hop runs on one node and may only
touch that node's tables.

The package uses only the standard library.

## Stages

1. **Program model** (`fmitf.ast_nodes`). A `Program` owns lists of nodes,
   tables, fields, functions, hops, parameters, statements and expressions.
   Every item is referred to by its integer index. You build a program with
   `add_node`, `add_field`, `add_table`, `add_parameter`, `add_expression`,
   `add_statement`, `add_hop` and `add_function`. `add_table` raises
   `AnalysisError` in three cases: the node is undeclared, the table has no
   primary-key field, or it has more than one.
2. **Name resolution** (`fmitf.name_resolver`). `resolve_names(program)` binds
   these names in place:
   - identifiers to variables, recorded in `program.resolutions`;
   - table reads and writes to tables and fields;
   - hops to nodes.
3. **Semantic analysis** (`fmitf.semantics`, `fmitf.type_checker`).
   `analyze_program(program)` checks:
   - the types of expressions, declarations, table writes and returns;
   - that `if` and `while` conditions are boolean;
   - that `break` and `continue` appear only inside a loop;
   - that a non-void function has a return;
   - that no hop touches a table on another node;
   - that table rows are addressed by their primary key;
   - that `abort` appears only in the first hop.

   `TypeChecker` and `types_compatible` can also be used on their own. An int
   is accepted where a float is expected.
4. **CFG construction** (`fmitf.cfg_builder`, `fmitf.cfg_lowering`).
   `build_cfg(program)` lowers a checked program into a `CfgProgram`. Each
   function becomes a `FunctionCfg` made of hops and basic blocks. Each basic
   block holds three-address statements (`Assign`, `TableAssign`) and ends in
   one explicit terminator: `Goto`, `Branch`, `Return`, `Abort` or `HopExit`.

   Intermediate results are stored in temporaries named `_temp_<n>`. A hop that
   is not the last one ends in `HopExit`. The last hop of a function falls
   through to `Return()` if the function is void, and to `Abort()` otherwise.
   If the graph cannot be built, `CfgBuildError` is raised.
5. **Dataflow** (`fmitf.dataflow`). This is a worklist solver over `SetLattice`
   values, where meet is set union. Three analyses use it:
   - `fmitf.liveness.analyze_live_variables`, a backward analysis over variable
     ids;
   - `fmitf.reaching_definitions.analyze_reaching_definitions`, a forward
     analysis over `Definition(var_id, site)` values;
   - `fmitf.available_expressions.analyze_available_expressions`, a forward
     analysis over rvalues.

   Each analysis returns a `DataflowResults`. Its `entry` and `exit`
   dictionaries map every basic-block id to the lattice value at the block's
   entry and at its exit.

   To write your own analysis, subclass `TransferFunction` and pass an instance
   to `DataflowAnalysis` together with a `Direction`.

## Example

```python
from fmitf.ast_nodes import (
    Ident, Program, ReturnStatement, ReturnType, TableFieldAccess, TypeName,
)
from fmitf.cfg_builder import build_cfg
from fmitf.errors import AnalysisError, format_errors
from fmitf.liveness import analyze_live_variables
from fmitf.name_resolver import resolve_names
from fmitf.semantics import analyze_program

program = Program()
program.add_node("n1")
pk = program.add_field(TypeName.INT, "id", is_primary=True)
balance = program.add_field(TypeName.INT, "balance")
program.add_table("accounts", "n1", [pk, balance])

acct = program.add_parameter(TypeName.INT, "acct")
key = program.add_expression(Ident("acct"))
read = program.add_expression(TableFieldAccess("accounts", "id", key, "balance"))
ret = program.add_statement(ReturnStatement(read))
hop = program.add_hop("n1", [ret])
program.add_function("get_balance", ReturnType(TypeName.INT), [acct], [hop])

try:
    resolve_names(program)
    analyze_program(program)
except AnalysisError as exc:
    print(format_errors(exc.errors))
else:
    cfg = build_cfg(program)
    for func in cfg.functions:
        live = analyze_live_variables(func)
        print(func.name, live.entry)
```

## Errors

The resolution and analysis stages do not stop at the first problem. Each one
collects every error it finds and then raises them all together as an
`AnalysisError`. Its `errors` attribute is a list of `SpannedError` values.
Each `SpannedError` holds:

- an `AstError`, which has an `ErrorKind` and the details its message names;
- a `Span`, when the position is known.

`format_errors(errors)` renders the errors one per line, for example:

```
Error at 4:9: Cannot access table 'accounts' on node 'n2' from node 'n1'
```

## Command-line options

`fmitf.cli` holds the option model of a command-line front end:

- `Mode` is one of `ast`, `cfg`, `optimize`, `scgraph` or `verify`.
- `CliOptions` holds the options: input path, mode, `--output`, `--output-dir`,
  `--verbose`, `--show-spans`, `--dot`, `--quiet`, `--timeout` and
  `--no-optimize`.
- `CliOptions.validate()` raises `ValueError` when options do not fit
  together.
- `parse_args(argv)` builds a `CliOptions` from an argument list.
- `print_spanned_error(error, source_code, stream)` writes an error, the source
  line it points at and a caret. It writes to stderr by default.

## What this package does not do

- It does not read source text. There is no parser, so programs are built
  through the `Program.add_*` methods.
- It installs no command. `fmitf.cli` parses and validates options but runs no
  pipeline.
- The `optimize`, `scgraph` and `verify` modes are only option values. The
  package has:
  - no CFG optimizer;
  - no serializability conflict graph;
  - no verifier;
  - no printers for programs or graphs.

## Tests

Install the package with its `test` extra, then run `pytest`.