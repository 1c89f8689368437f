# xvkit

Pure-Python models of the core pieces of a small 32-bit x86 teaching
kernel and its user space. Each piece works on ordinary Python data, so it
can be tested, stepped through and tried out without an emulator.

## What is inside

| Module | What it gives you |
| --- | --- |
| `xvkit.constants` | Kernel parameters (`NPROC`, `NOFILE`, `MAXARG`, ...), the enums `Trap`, `Irq`, `SyscallNumber`, `OpenFlag`, `FileType`, and the `Stat` (with `pack`/`unpack`) and `RtcDate` records |
| `xvkit.mmu` | Address arithmetic (`pdx`, `ptx`, `pgaddr`, `pg_round_up`, `pg_round_down`, `pte_addr`, `pte_flags`, `v2p`, `p2v`), layout constants, and packed `SegmentDescriptor` / `GateDescriptor` values |
| `xvkit.elf` | `ElfHeader`, `ProgramHeader` and `program_headers` for 32-bit little-endian ELF images; bad or truncated input raises `ElfError` |
| `xvkit.cstring` | Byte-string helpers over `bytes`/`bytearray`: `memset`, `memcmp`, `memmove`, `strlen`, `strcmp`, `strncmp`, `strncpy`, `safestrcpy`, `strchr`, `atoi` |
| `xvkit.shell` | The shell's tokenizer and parser: `tokenize`, `parse_command`, and the command tree (`ExecCommand`, `RedirCommand`, `PipeCommand`, `ListCommand`, `BackCommand`) |
| `xvkit.wc` | Line, word and byte counting: `count`, `Counts`, and a `main` entry point |
| `xvkit.umalloc` | A first-fit free-list `Heap` with `malloc`, `free` and `free_blocks`, over integer addresses |
| `xvkit.locks` | `SpinLock`, owned by a thread, which raises `LockError` on a second acquire by its holder or a release by a non-holder; `SleepLock`, held on behalf of a process id, whose waiters block until it is free |
| `xvkit.vm` | Two-level page tables over simulated `PhysicalMemory`: `setup_kvm`, and `PageDirectory` with walking, mapping, growing, shrinking, copying, freeing and user copy-out/read |
| `xvkit.syscall` | `Process`, `TrapFrame`, bounds-checked argument fetching (raising `SyscallError`), and a `SyscallTable` that dispatches on `tf.eax` |

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Parse a shell command line into a tree:

```python
from xvkit.shell import parse_command, PipeCommand

tree = parse_command("cat README | grep kernel > out")
assert isinstance(tree, PipeCommand)
```

Malformed input raises `ShellSyntaxError`.

Count a stream the way the `wc` user program does:

```python
import io
from xvkit.wc import count

counts = count(io.BytesIO(b"hello world\n"))
print(counts.format("greeting"))   # 1 2 12 greeting
```

Work with page-table addresses:

```python
from xvkit.mmu import pdx, ptx, pg_round_up

va = 0x00403123
print(pdx(va), ptx(va), hex(pg_round_up(va)))
```

Build a user address space and write into it. The kernel mappings alone
need several dozen page-table pages, so give the pool room:

```python
from xvkit.vm import PhysicalMemory, setup_kvm

memory = PhysicalMemory(256)
pgdir = setup_kvm(memory)
size = pgdir.alloc_uvm(0, 8192)
pgdir.copy_out(100, b"hi")
assert pgdir.read_user(100, 2) == b"hi"
```

Dispatch a system call:

```python
from xvkit.constants import SyscallNumber
from xvkit.syscall import Process, default_table

proc = Process(pid=7)
proc.tf.eax = SyscallNumber.GETPID
assert default_table().dispatch(proc) == 7
```

`default_table()` holds only the calls that need nothing beyond the calling
process (`GETPID` and `WCUPA`); others can be added with
`SyscallTable.register`. Unknown numbers print a message and return `-1`
(as an unsigned 32-bit value in `eax`).

## Command line

`xvkit-wc` prints the line, word and byte counts of each file named on the
command line, or of standard input when none is given:

```
xvkit-wc notes.txt
```

## What it does not do

xvkit models pieces, not a running system. There is no scheduler, no
processes that fork, wait or exit, no file system, disk or buffer cache,
no pipes, and no boot or device handling. The shell module parses command
lines but does not run them, and the system call table has no file or
process-management calls.