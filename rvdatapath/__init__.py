from .common import *
from .alu import alu, alu_names, alu_ops
from .control import control, ctrl
from .asm import AsmError, assemble, listing, parse_hex
from .sim import sim, stages, step_result
from .dump import decoder
