#!/usr/bin/env python3
import argparse, logging, readchar
from .common import xfmt
from .asm import AsmError
from .sim import sim

def load(rv, f):  # .bin image or program text
    data = f.read()
    return rv.load_bin(data) if f.name.endswith('.bin') else rv.load_program(data.decode())

def print_stage(stage, res):
    if stage == 'FETCH': print(f'  {stage:6} pc={xfmt(32, res.pc_before)} instr={"--------" if res.instr is None else xfmt(32, res.instr)}')
    elif stage == 'DECODE': print(f'  {stage:6} {res.decoded!r:24} rs1={xfmt(32, res.rs1_val)} rs2={xfmt(32, res.rs2_val)} {res.ctrl}')
    elif stage == 'EXEC': print(f'  {stage:6} b={xfmt(32, res.alu_b)} alu={xfmt(32, res.alu_res)}')
    elif stage == 'MEM': print(f'  {stage:6} ' + ('-' if res.mem_index is None else f'mem[{res.mem_index}] addr={xfmt(32, res.mem_addr)} data={xfmt(32, res.mem_data)}'))
    elif stage == 'WB': print(f'  {stage:6} ' + (f'x{res.wb_rd}={xfmt(32, res.wb_val)}' if res.wb_we else '-') + f' pc={xfmt(32, res.pc_after)}')

def run_paced(rv, limit=0, delay=0.0, trace=None):  # phase-by-phase stepping with stage printout
    executed = 0
    while not rv.halted and not (limit and executed >= limit):
        if rv.step_notify(print_stage, delay, trace=trace) is not None: executed += 1
    return executed

def interactive(rv, limit=0, delay=0.0, trace=None):  # limit counts instructions over the whole session
    print('<<<--- space/enter: step   r: run   q: quit --->>>')
    executed = 0
    while not rv.halted and not (limit and executed >= limit):
        key = readchar.readkey()
        left = limit - executed if limit else 0
        if key == 'q': break
        elif key == 'r': executed += run_paced(rv, left, delay, trace) if delay else rv.run(left, trace=trace)
        elif key in (readchar.key.SPACE, readchar.key.ENTER, readchar.key.CR, readchar.key.LF): executed += run_paced(rv, 1, delay, trace)
    return executed

def show(rv):
    print(f'pc={xfmt(32, rv.pc)} cycle={rv.cycle} halted={rv.halted}')
    print(rv.x)
    print(rv.mem_str())

def main(argv=None):
    parser = argparse.ArgumentParser(prog='rvdatapath-sim', description='Single-cycle datapath simulator for an RV32I subset (R-type, I-type ALU, lw, sw, branches).')
    parser.add_argument('program', type=argparse.FileType('rb'), help='Program to load: .bin image, hex words (one per line) or assembly text')
    parser.add_argument('-l', '--limit', type=int, default=0, help='Limit number of executed instructions (0=unlimited)')
    parser.add_argument('-t', '--trace', action='store_true', help='Prints every executed instruction with its register and memory writes')
    parser.add_argument('-i', '--interactive', action='store_true', help='Step with the keyboard instead of running to the end')
    parser.add_argument('-d', '--delay', type=float, default=0.0, help='Print every pipeline stage, pausing this many seconds between stages')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log loader and assembler details')
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format='%(levelname)s %(name)s: %(message)s')
    rv = sim(trace=args.trace)
    try: words = load(rv, args.program)
    except (AsmError, ValueError) as e: print(f'error: {e}'); exit(1)
    print(f'<<<--- {args.program.name}: {words} instruction words loaded --->>>')
    if args.interactive: interactive(rv, args.limit, args.delay)
    elif args.delay: run_paced(rv, args.limit, args.delay)
    else: rv.run(args.limit)
    show(rv)

if __name__ == '__main__': main()
