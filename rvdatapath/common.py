import collections, functools

iregs = 'zero,ra,sp,gp,tp,t0,t1,t2,fp,s1,a0,a1,a2,a3,a4,a5,a6,a7,s2,s3,s4,s5,s6,s7,s8,s9,s10,s11,t3,t4,t5,t6'.split(',')
def zext(length, word): return word&((1<<length)-1)
def sext(length, word): return word|~((1<<length)-1) if word&(1<<(length-1)) else zext(length, word)
def xfmt(length, word): return f'{{:0{length//4}x}}'.format(zext(length, word))

OP_LOAD, OP_IMM, OP_STORE, OP_R, OP_LUI, OP_BRANCH, OP_JAL, OP_SYSTEM = 0x03, 0x13, 0x23, 0x33, 0x37, 0x63, 0x6f, 0x73
ECALL, EBREAK = 0x00000073, 0x00100073
HALT_WORDS = frozenset((0, ECALL, EBREAK))  # null word (end of loaded program) or explicit trap

# (opcode, funct3, funct7) -> mnemonic. None matches any value of that field.
mnemonics = {
    (OP_R, 0, 0x00): 'add', (OP_R, 0, 0x20): 'sub', (OP_R, 1, 0x00): 'sll', (OP_R, 2, 0x00): 'slt',
    (OP_R, 3, 0x00): 'sltu', (OP_R, 4, 0x00): 'xor', (OP_R, 5, 0x00): 'srl', (OP_R, 5, 0x20): 'sra',
    (OP_R, 6, 0x00): 'or', (OP_R, 7, 0x00): 'and',
    (OP_IMM, 0, None): 'addi', (OP_IMM, 2, None): 'slti', (OP_IMM, 3, None): 'sltiu', (OP_IMM, 4, None): 'xori',
    (OP_IMM, 6, None): 'ori', (OP_IMM, 7, None): 'andi', (OP_IMM, 1, 0x00): 'slli', (OP_IMM, 5, 0x00): 'srli', (OP_IMM, 5, 0x20): 'srai',
    (OP_LOAD, 2, None): 'lw', (OP_STORE, 2, None): 'sw',
    (OP_BRANCH, 0, None): 'beq', (OP_BRANCH, 1, None): 'bne', (OP_BRANCH, 4, None): 'blt',
    (OP_BRANCH, 5, None): 'bge', (OP_BRANCH, 6, None): 'bltu', (OP_BRANCH, 7, None): 'bgeu',
    (OP_LUI, None, None): 'lui', (OP_JAL, None, None): 'jal',
}
systems = {ECALL: 'ecall', EBREAK: 'ebreak'}

def mnemonic(opcode, funct3, funct7):
    for key in ((opcode, funct3, funct7), (opcode, funct3, None), (opcode, None, None)):
        if key in mnemonics: return mnemonics[key]
    return 'UNKNOWN'

def uimm20(word): return zext(20, word>>12)
def jimm20(word): return sext(21, ((word>>31)&1)<<20 | ((word>>12)&0xff)<<12 | ((word>>20)&1)<<11 | ((word>>21)&0x3ff)<<1)

class rvinstr(collections.namedtuple('rvinstr', 'data opcode rd funct3 rs1 rs2 funct7 imm fmt')):
    """A decoded instruction word.

    ``imm`` is the sign-extended immediate of the I, S and B formats (``fmt``),
    0 and ``fmt=''`` for everything else. U and J immediates are only decoded
    for display.
    """
    __slots__ = ()
    @property
    def name(self): return systems.get(self.data) or mnemonic(self.opcode, self.funct3, self.funct7)
    def valid(self): return self.name != 'UNKNOWN'
    def arg_str(self):
        r = lambda i: f'x{i}'
        if self.name in ('lw', 'sw'): args = [r(self.rd) if self.name == 'lw' else r(self.rs2), f'{self.imm}({r(self.rs1)})']
        elif self.fmt == 'B': args = [r(self.rs1), r(self.rs2), f'{self.imm}']
        elif self.opcode == OP_R: args = [r(self.rd), r(self.rs1), r(self.rs2)]
        elif self.opcode == OP_IMM: args = [r(self.rd), r(self.rs1), f'{self.imm&0x1f if self.funct3 in (1, 5) else self.imm}']
        elif self.opcode == OP_LUI: args = [r(self.rd), hex(uimm20(self.data))]
        elif self.opcode == OP_JAL: args = [r(self.rd), f'{jimm20(self.data)}']
        elif self.name in ('ecall', 'ebreak'): args = []
        else: args = [f'data={self.data:#010x}']  # fallback
        return ', '.join(args)
    def __repr__(self): return f'{self.name:6} {self.arg_str()}'.rstrip()

@functools.lru_cache(maxsize=4096)
def decode(instr):  # decodes one instruction word. Never fails: any 32-bit value yields some field tuple.
    instr = zext(32, instr)
    opcode, rd, funct3, rs1, rs2, funct7 = instr&0x7f, (instr>>7)&0x1f, (instr>>12)&7, (instr>>15)&0x1f, (instr>>20)&0x1f, (instr>>25)&0x7f
    if opcode in (OP_IMM, OP_LOAD): imm, fmt = sext(12, instr>>20), 'I'
    elif opcode == OP_STORE:        imm, fmt = sext(12, (funct7<<5) | rd), 'S'
    elif opcode == OP_BRANCH:       imm, fmt = sext(13, ((instr>>31)&1)<<12 | ((instr>>7)&1)<<11 | ((instr>>25)&0x3f)<<5 | ((instr>>8)&0xf)<<1), 'B'
    else:                           imm, fmt = 0, ''
    return rvinstr(instr, opcode, rd, funct3, rs1, rs2, funct7, imm, fmt)

# Field encoders. Every field is masked to its width, the result is an unsigned 32-bit word.
def encode_r(funct7, rs2, rs1, funct3, rd, opcode): return zext(7,funct7)<<25 | zext(5,rs2)<<20 | zext(5,rs1)<<15 | zext(3,funct3)<<12 | zext(5,rd)<<7 | zext(7,opcode)
def encode_i(imm, rs1, funct3, rd, opcode):         return zext(12,imm)<<20   |                   zext(5,rs1)<<15 | zext(3,funct3)<<12 | zext(5,rd)<<7 | zext(7,opcode)
def encode_s(imm, rs2, rs1, funct3, opcode):        return zext(7,imm>>5)<<25 | zext(5,rs2)<<20 | zext(5,rs1)<<15 | zext(3,funct3)<<12 | zext(5,imm)<<7 | zext(7,opcode)
def encode_b(imm, rs2, rs1, funct3, opcode):  # imm is a byte offset, bit 0 is dropped
    imm = zext(13, imm)
    return (imm>>12&1)<<31 | (imm>>5&0x3f)<<25 | zext(5,rs2)<<20 | zext(5,rs1)<<15 | zext(3,funct3)<<12 | (imm>>1&0xf)<<8 | (imm>>11&1)<<7 | zext(7,opcode)
def encode_u(imm, rd, opcode): return zext(20,imm)<<12 | zext(5,rd)<<7 | zext(7,opcode)
def encode_j(imm, rd, opcode):  # imm is a byte offset, bit 0 is dropped
    imm = zext(21, imm)
    return (imm>>20&1)<<31 | (imm>>1&0x3ff)<<21 | (imm>>11&1)<<20 | (imm>>12&0xff)<<12 | zext(5,rd)<<7 | zext(7,opcode)
