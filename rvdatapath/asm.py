"""Two-pass assembler for the RV32I subset executed by :class:`rvdatapath.sim`.

Pass 1 binds every ``label:`` line to the byte address of the next instruction,
pass 2 encodes one 32-bit word per instruction line. Registers are ``x0``..``x31``,
immediates are decimal or ``0x`` hex. Comments start with ``#`` or ``//``.
"""
import re, logging
from .common import *

logger = logging.getLogger(__name__)

reg_re = re.compile(r'x([0-9]|[12][0-9]|3[01])')
imm_re = re.compile(r'-?[0-9]+|0x[0-9a-fA-F]+')
mem_re = re.compile(r'[^,]+,\s*[^\s(),]+\s*\(\s*[^\s(),]+\s*\)')  # rd, imm(rs1)
comment_re = re.compile(r'#|//')

r_type = {'add': (0x00, 0), 'sub': (0x20, 0), 'sll': (0x00, 1), 'slt': (0x00, 2), 'sltu': (0x00, 3),
          'xor': (0x00, 4), 'srl': (0x00, 5), 'sra': (0x20, 5), 'or': (0x00, 6), 'and': (0x00, 7)}  # -> funct7, funct3
i_type = {'addi': 0, 'slti': 2, 'sltiu': 3, 'xori': 4, 'ori': 6, 'andi': 7, 'slli': 1, 'srli': 5, 'srai': 5}  # -> funct3
shift_ops = ('slli', 'srli', 'srai')  # shamt lives in imm[4:0], imm[11:5] is funct7
b_type = {'beq': 0, 'bne': 1, 'blt': 4, 'bge': 5, 'bltu': 6, 'bgeu': 7}  # -> funct3
operand_counts = {**dict.fromkeys(r_type, 3), **dict.fromkeys(i_type, 3), **dict.fromkeys(b_type, 3), 'lw': 3, 'sw': 3, 'lui': 2, 'jal': 2}

class AsmError(Exception):
    def __init__(self, line, msg, mnemonic=None, token=None):
        self.line, self.mnemonic, self.token = line, mnemonic, token
        super().__init__(f'Line {line}: {msg}')

def strip_line(raw):  # returns the code part of a source line, '' for blank and comment lines
    return comment_re.split(raw.strip(), maxsplit=1)[0].strip()

def label_name(line): return line[:-1].strip() if line.endswith(':') else None

def collect_labels(lines):
    """Pass 1: maps label names to the byte address of the following instruction."""
    labels, pc = {}, 0
    for lineno, raw in enumerate(lines, 1):
        if not (line := strip_line(raw)): continue
        if (name := label_name(line)) is None: pc += 4; continue  # every instruction line counts, even if it will not encode
        if not name: raise AsmError(lineno, 'empty label name', token=line)
        if name in labels: raise AsmError(lineno, f'duplicate label {name!r}', token=name)
        labels[name] = pc
    return labels

def reg(lineno, mn, tok):
    if not reg_re.fullmatch(tok): raise AsmError(lineno, f'invalid format in {mn}: expected register, got {tok!r}', mn, tok)
    return int(tok[1:])

def imm(lineno, mn, tok):
    if not imm_re.fullmatch(tok): raise AsmError(lineno, f'invalid format in {mn}: expected immediate, got {tok!r}', mn, tok)
    return int(tok, 16) if tok.startswith('0x') else int(tok, 10)

def target(lineno, mn, tok, labels, pc, bits):  # pc-relative byte offset to a label
    if tok not in labels: raise AsmError(lineno, f'undefined label {tok!r}', mn, tok)
    offset = labels[tok] - pc
    if not -(1<<(bits-1)) <= offset < (1<<(bits-1)): raise AsmError(lineno, f'{mn}: label {tok!r} out of range (offset {offset})', mn, tok)
    return offset

def assemble_line(line, pc, labels, lineno=0):
    """Encodes one instruction line at byte address ``pc``. Returns None for unknown mnemonics."""
    mn, rest = (line.split(None, 1) + [''])[:2]
    mn, rest = mn.lower(), rest.strip()
    if mn not in operand_counts:
        logger.warning('line %d: unknown instruction %r skipped', lineno, line)
        return None
    ops = [t for t in re.split(r'[\s,()]+', rest) if t]
    if mn in ('lw', 'sw') and not mem_re.fullmatch(rest): raise AsmError(lineno, f'invalid format in {mn}: expected {"rd" if mn == "lw" else "rs2"}, imm(rs1), got {rest!r}', mn, rest)
    if len(ops) != operand_counts[mn]: raise AsmError(lineno, f'{mn} expects {operand_counts[mn]} operands, got {len(ops)}: {line!r}', mn, rest)
    if mn in r_type:
        funct7, funct3 = r_type[mn]
        return encode_r(funct7, reg(lineno, mn, ops[2]), reg(lineno, mn, ops[1]), funct3, reg(lineno, mn, ops[0]), OP_R)
    if mn in i_type:
        value = imm(lineno, mn, ops[2])
        if mn in shift_ops and not 0 <= value < 32: raise AsmError(lineno, f'{mn}: shift amount {ops[2]!r} out of range 0..31', mn, ops[2])
        word = encode_i(value, reg(lineno, mn, ops[1]), i_type[mn], reg(lineno, mn, ops[0]), OP_IMM)
        return word | (0x20<<25) if mn == 'srai' else word
    if mn == 'lw': return encode_i(imm(lineno, mn, ops[1]), reg(lineno, mn, ops[2]), 2, reg(lineno, mn, ops[0]), OP_LOAD)
    if mn == 'sw': return encode_s(imm(lineno, mn, ops[1]), reg(lineno, mn, ops[0]), reg(lineno, mn, ops[2]), 2, OP_STORE)
    if mn in b_type:
        rs1, rs2 = reg(lineno, mn, ops[0]), reg(lineno, mn, ops[1])
        return encode_b(target(lineno, mn, ops[2], labels, pc, 13), rs2, rs1, b_type[mn], OP_BRANCH)
    if mn == 'lui': return encode_u(imm(lineno, mn, ops[1]), reg(lineno, mn, ops[0]), OP_LUI)
    if mn == 'jal':  # label or raw byte offset
        rd = reg(lineno, mn, ops[0])
        offset = target(lineno, mn, ops[1], labels, pc, 21) if ops[1] in labels or not imm_re.fullmatch(ops[1]) else imm(lineno, mn, ops[1])
        return encode_j(offset, rd, OP_JAL)

def assembler(source, warnings=None):  # yields (lineno, pc, word, line) for every instruction line, word is None if skipped
    lines = source.splitlines()
    labels, pc = collect_labels(lines), 0
    for lineno, raw in enumerate(lines, 1):
        if not (line := strip_line(raw)) or label_name(line) is not None: continue
        word = assemble_line(line, pc, labels, lineno)
        if word is None and warnings is not None: warnings.append(f'line {lineno}: unknown instruction {line!r}')
        yield lineno, pc, word, line
        pc += 4

def assemble(source, warnings=None):
    """Translates assembly text into a list of unsigned 32-bit instruction words.

    Raises AsmError on the first malformed line. Lines with unknown mnemonics are
    skipped (and appended to ``warnings`` if given) but still advance the program counter.
    """
    return [zext(32, word) for _, _, word, _ in assembler(source, warnings) if word is not None]

def listing(source):
    """Returns (address, word, source) for every emitted instruction."""
    return [(pc, zext(32, word), line) for _, pc, word, line in assembler(source) if word is not None]

hex_re = re.compile(r'[0-9a-fA-F]+')

def is_hex_program(text):  # raw hex if the first line with code is nothing but hex digits
    return next((bool(hex_re.fullmatch(line)) for line in map(strip_line, text.splitlines()) if line), False)

def parse_hex(text):
    """Reads one hex word per line, skipping blank and comment lines."""
    words = []
    for lineno, raw in enumerate(text.splitlines(), 1):
        if not (line := strip_line(raw)): continue
        if not hex_re.fullmatch(line) or len(line) > 8: raise AsmError(lineno, f'expected a 32-bit hex word, got {line!r}', token=line)
        words.append(int(line, 16))
    return words
