import struct, collections, time, logging
from .common import *
from .alu import alu
from .control import control
from .asm import assemble, is_hex_program, parse_hex

logger = logging.getLogger(__name__)

IMEM_WORDS, DMEM_WORDS = 256, 32
reg_seed = {1: 0x00000001, 2: 0x00000002, 3: 0xfffffffd, 5: 0x00000005, 7: 0x00000007}  # demo values restored on reset
dmem_seed = (0x00000005, 0x000000af, 0x000000d2, 0x00000003)

stages = ('FETCH', 'DECODE', 'EXEC', 'MEM', 'WB')
step_result = collections.namedtuple('step_result', 'instr pc_before pc_after decoded ctrl rs1_val rs2_val alu_b alu_res mem_data mem_addr mem_index wb_we wb_rd wb_val',
                                     defaults=(None, None, None, None, None, None, None, 0, None, None, False, None, None))

class sim:  # single-cycle datapath for an RV32I subset: R-type, I-type ALU, lw, sw, branches
    class rvregs:
        def __init__(self, sim): self._x, self.sim = [0]*32, sim
        def __getitem__(self, i): return self._x[i]
        def __setitem__(self, i, d):  # x0 is hard-wired to zero
            i = range(32)[i]
            if i!=0 and (self.sim.trace_log is not None): self.sim.trace_log.append(f'{iregs[i]}={xfmt(32, d)}')
            if i!=0: self._x[i] = zext(32, d)
        def __len__(self): return len(self._x)
        def __iter__(self): return iter(self._x)
        def __repr__(self): return '\n'.join(['  '.join([f'x{r+rr:02d}({(iregs[r+rr])[-2:]})={xfmt(32, self._x[r+rr])}' for r in range(0, 32, 8)]) for rr in range(8)])
    def __init__(self, trace=False):
        self.trace, self.trace_log, self.op = trace, None, None
        self.x, self.dmem, self.imem = self.rvregs(self), [0]*DMEM_WORDS, [0]*IMEM_WORDS
        self.reset()
    def reset(self):  # instruction memory survives a reset
        self.pc, self.cycle, self.halted, self.op = 0, 0, False, None
        self.x._x[:] = [reg_seed.get(i, 0) for i in range(32)]
        self.dmem[:] = [*dmem_seed] + [0]*(DMEM_WORDS-len(dmem_seed))
    def load_words(self, words):
        words = [zext(32, w) for w in words]
        if len(words) > IMEM_WORDS: raise ValueError(f'program has {len(words)} words, instruction memory holds {IMEM_WORDS}')
        self.imem[:] = words + [0]*(IMEM_WORDS-len(words))
        self.reset()
        logger.info('loaded %d instruction words', len(words))
        return len(words)
    def load_bin(self, data): return self.load_words(w for w, in struct.iter_unpack('<I', bytes(data) + b'\0'*(-len(data)%4)))
    def load_program(self, text):  # raw hex (one word per line) or assembly text
        return self.load_words(parse_hex(text) if is_hex_program(text) else assemble(text))
    def mem_index(self, addr): return (addr>>2)&(DMEM_WORDS-1)
    def store(self, addr, data):
        if self.trace_log is not None: self.trace_log.append(f'{xfmt(32, data)}->mem[{xfmt(32, addr)}]')
        self.dmem[self.mem_index(addr)] = zext(32, data)
    def load(self, addr):
        data = self.dmem[self.mem_index(addr)]
        if self.trace_log is not None: self.trace_log.append(f'mem[{xfmt(32, addr)}]->{xfmt(32, data)}')
        return data
    def step_phases(self, trace=None):
        """Executes one instruction as a generator of phase checkpoints.

        Yields ``(stage, step_result)`` after each completed phase, in the order of
        ``stages``; the partial result holds every value computed so far. The generator
        returns the final result, or None if the core was already halted or halts on
        this fetch. Each phase commits its own state changes before yielding, so
        abandoning the generator leaves the core at the last completed phase boundary.
        """
        if self.halted: return None
        trace = self.trace if trace is None else trace
        self.trace_log = [] if trace else None
        pc = self.pc
        # FETCH
        instr = self.imem[pc>>2] if (pc>>2) < len(self.imem) else None
        res = step_result(instr, pc)
        if instr is None or instr in HALT_WORDS:
            self.halted = True
            if trace: print(f'{pc:08x}: HALT' + ('' if instr is None else f' ({instr:08x})'))
            yield 'FETCH', res
            return None
        yield 'FETCH', res
        # DECODE, register read
        self.cycle += 1
        self.op = d = decode(instr)
        c = control(d.opcode, d.funct3, d.funct7)
        res = res._replace(decoded=d, ctrl=c, rs1_val=self.x[d.rs1], rs2_val=self.x[d.rs2])
        yield 'DECODE', res
        # EXEC
        alu_b = zext(32, d.imm) if c.alu_src else res.rs2_val
        res = res._replace(alu_b=alu_b, alu_res=alu(res.rs1_val, alu_b, c.alu_op))
        yield 'EXEC', res
        # MEM
        if c.wem: self.store(res.alu_res, res.rs2_val)
        elif d.opcode == OP_LOAD: res = res._replace(mem_data=self.load(res.alu_res))
        if c.wem or d.opcode == OP_LOAD: res = res._replace(mem_addr=res.alu_res, mem_index=self.mem_index(res.alu_res))
        yield 'MEM', res
        # WB, next pc
        taken = c.branch and res.alu_res == (0 if c.branch_ne else 1)
        pc_next = zext(32, pc + (d.imm if taken else 4)) & ~3
        if not c.wem and d.opcode != OP_BRANCH and d.rd != 0:
            wb_val = res.mem_data if d.opcode == OP_LOAD and c.alu2reg else res.alu_res
            self.x[d.rd] = wb_val
            res = res._replace(wb_we=True, wb_rd=d.rd, wb_val=wb_val)
        self.pc = pc_next
        res = res._replace(pc_after=pc_next)
        yield 'WB', res
        if trace: print(f'{pc:08x}: {str(d):30} # [{self.cycle-1}]', ' '.join(self.trace_log))
        return res
    def step_notify(self, notify=None, phase_delay=0.4, trace=None):
        """Steps like step(), calling ``notify(stage, partial_result)`` after each phase and
        sleeping ``phase_delay`` seconds between phases."""
        phases = self.step_phases(trace)
        while True:
            try: stage, res = next(phases)
            except StopIteration as stop: return stop.value
            if notify: notify(stage, res)
            if phase_delay: time.sleep(phase_delay)
    def step(self, trace=None): return self.step_notify(None, 0, trace)
    def run(self, limit=0, bpts=set(), trace=None):  # returns the number of executed instructions
        executed = 0
        while not self.halted:
            if self.step(trace=trace) is not None: executed += 1
            if (limit and executed >= limit) or self.pc in bpts: break
        return executed
    def mem_str(self, words_per_line=8):
        return '\n'.join(f'{i*4:02x}: ' + ' '.join(xfmt(32, w) for w in self.dmem[i:i+words_per_line]) for i in range(0, DMEM_WORDS, words_per_line))
