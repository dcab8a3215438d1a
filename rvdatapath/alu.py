from .common import zext, sext

ALU_ADD, ALU_SUB, ALU_SLL, ALU_SLT, ALU_SLTU, ALU_XOR, ALU_SRL, ALU_SRA, ALU_OR, ALU_AND, ALU_SEQ, ALU_BEQ, ALU_BLT, ALU_BLTU = range(14)
alu_names = dict(enumerate('ADD,SUB,SLL,SLT,SLTU,XOR,SRL,SRA,OR,AND,SEQ,BEQ,BLT,BLTU'.split(',')))

# Operands arrive as unsigned 32-bit words. Signed interpretation only where the operation says so.
alu_ops = {
    ALU_ADD:  lambda a, b: a + b,
    ALU_SUB:  lambda a, b: a - b,
    ALU_SLL:  lambda a, b: a << (b&0x1f),
    ALU_SLT:  lambda a, b: int(sext(32, a) < sext(32, b)),
    ALU_SLTU: lambda a, b: int(a < b),
    ALU_XOR:  lambda a, b: a ^ b,
    ALU_SRL:  lambda a, b: a >> (b&0x1f),
    ALU_SRA:  lambda a, b: sext(32, a) >> (b&0x1f),
    ALU_OR:   lambda a, b: a | b,
    ALU_AND:  lambda a, b: a & b,
    ALU_SEQ:  lambda a, b: int(a == b),
    ALU_BEQ:  lambda a, b: int(a == b),  # branch comparators
    ALU_BLT:  lambda a, b: int(sext(32, a) < sext(32, b)),
    ALU_BLTU: lambda a, b: int(a < b),
}

def alu(a, b, op):
    """Evaluates ALU operation ``op`` on two 32-bit words and returns an unsigned 32-bit word.

    Results wrap modulo 2**32, comparisons return 0 or 1. The control unit only ever
    produces codes from ``alu_ops``; any other code is a bug in the caller.
    """
    assert op in alu_ops, f'invalid ALU operation {op!r}'
    return zext(32, alu_ops.get(op, lambda a, b: 0)(zext(32, a), zext(32, b)))
