import os, sys, pathlib, struct
from .common import decode, zext
from .asm import AsmError, is_hex_program, parse_hex, assemble

def rvsplitter(*data, base=0):  # yields addresses and 32-bit instruction words from a .bin/.hex/.s file, hex strings or ints.
    if len(data) == 1 and isinstance(data[0], str) and os.path.isfile(data[0]):
        raw = open(data[0], 'rb').read()
        if data[0].endswith('.bin'): words = [w for w, in struct.iter_unpack('<I', raw + b'\0'*(-len(raw)%4))]
        else: text = raw.decode(); words = parse_hex(text) if is_hex_program(text) else assemble(text)
    else: words = [int(d, 16) if isinstance(d, str) else d for d in (data[0] if len(data) == 1 and hasattr(data[0], '__iter__') and not isinstance(data[0], str) else data)]
    for i, instr in enumerate(words): yield int(base)+i*4, zext(32, instr)

def decoder(*data, base=0):  # yields (address, decoded instruction), stops at the first null word.
    for addr, instr in rvsplitter(*data, base=base):
        if instr == 0: break
        yield addr, decode(instr)

def main():
    if len(sys.argv) < 2: print(f'usage {pathlib.Path(sys.argv[0]).name} (file.bin | file.hex | file.s | hex [hex ...])'); exit(1)
    try: ops = list(decoder(*sys.argv[1:]))
    except (AsmError, ValueError) as e: print(f'error: {e}'); exit(1)
    for addr, op in ops:
        print(f'{addr:08x}: {op.data:08x}  {str(op):30}' + ('' if op.valid() else ' # INVALID'))

if __name__ == '__main__': main()
