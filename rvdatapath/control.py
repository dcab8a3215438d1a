import collections, functools
from .common import OP_R, OP_IMM, OP_LOAD, OP_STORE, OP_BRANCH
from .alu import *

# alu_src: operand B is the immediate. alu2reg: write-back from data memory. wem: data memory write enable.
# branch/branch_ne: branch enabled, taken when the comparator yields 1 (0 if branch_ne).
ctrl = collections.namedtuple('ctrl', 'alu_src alu2reg wem branch branch_ne alu_op', defaults=(0, 0, 0, 0, 0, ALU_ADD))

# funct3 -> ALU operation shared by R-type and I-type arithmetic. funct7 == 0x20 selects SUB/SRA.
arith_ops = {0: ALU_ADD, 1: ALU_SLL, 2: ALU_SLT, 3: ALU_SLTU, 4: ALU_XOR, 5: ALU_SRL, 6: ALU_OR, 7: ALU_AND}
alt_ops = {ALU_ADD: ALU_SUB, ALU_SRL: ALU_SRA}
# funct3 -> (comparator, branch_ne)
branch_ops = {0: (ALU_BEQ, 0), 1: (ALU_BEQ, 1), 4: (ALU_BLT, 0), 5: (ALU_BLT, 1), 6: (ALU_BLTU, 0), 7: (ALU_BLTU, 1)}

@functools.lru_cache(maxsize=1024)
def control(opcode, funct3, funct7):
    """Maps the opcode fields of an instruction to its datapath control signals.

    Unrecognized opcodes (and unused funct3 values) fall through to all-zero signals.
    """
    if opcode == OP_R:
        op = arith_ops[funct3]
        return ctrl(alu_op=alt_ops.get(op, op) if funct7 == 0x20 else op)
    elif opcode == OP_IMM:
        op = arith_ops[funct3]
        return ctrl(alu_src=1, alu_op=alt_ops[op] if funct7 == 0x20 and op == ALU_SRL else op)  # no SUBI: addi ignores funct7
    elif opcode == OP_LOAD: return ctrl(alu_src=1, alu2reg=1)
    elif opcode == OP_STORE: return ctrl(alu_src=1, wem=1)
    elif opcode == OP_BRANCH:
        if funct3 not in branch_ops: return ctrl(branch=1)
        comparator, branch_ne = branch_ops[funct3]
        return ctrl(branch=1, branch_ne=branch_ne, alu_op=comparator)
    return ctrl()
