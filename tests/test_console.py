import struct, time
import pytest, readchar

from rvdatapath.console import main

program = 'addi x1,x0,5\naddi x2,x0,3\nadd x3,x1,x2\n'


@pytest.fixture
def prog(tmp_path):
    p = tmp_path / 'prog.s'
    p.write_text(program)
    return str(p)


def test_run_to_halt(prog, capsys):
    main([prog])
    out = capsys.readouterr().out
    assert '3 instruction words loaded' in out
    assert 'pc=0000000c cycle=3 halted=True' in out
    assert 'x03(gp)=00000008' in out
    assert '00: 00000005 000000af 000000d2 00000003' in out


def test_limit(prog, capsys):
    main([prog, '-l', '2'])
    out = capsys.readouterr().out
    assert 'halted=False' in out
    assert 'x02(sp)=00000003' in out and 'x03(gp)=fffffffd' in out


def test_trace(prog, capsys):
    main([prog, '-t'])
    out = capsys.readouterr().out
    assert 'gp=00000008' in out and 'HALT' in out


def test_binary_image(tmp_path, capsys):
    p = tmp_path / 'prog.bin'
    p.write_bytes(struct.pack('<3I', 0x00500093, 0x00300113, 0x002081b3))
    main([str(p)])
    assert 'x03(gp)=00000008' in capsys.readouterr().out


def test_paced_stages(prog, monkeypatch, capsys):
    sleeps = []
    monkeypatch.setattr(time, 'sleep', sleeps.append)
    main([prog, '-d', '0.1'])
    out = capsys.readouterr().out
    for stage in ('FETCH', 'DECODE', 'EXEC', 'MEM', 'WB'): assert f'  {stage}' in out
    assert 'x3=00000008 pc=0000000c' in out
    assert sleeps == [0.1] * 16  # three full instructions and the halting fetch


def test_interactive(prog, monkeypatch, capsys):
    keys = iter([' ', 'q'])
    monkeypatch.setattr(readchar, 'readkey', lambda: next(keys))
    main([prog, '-i'])
    out = capsys.readouterr().out
    assert 'pc=00000004 cycle=1 halted=False' in out
    assert 'x01(ra)=00000005' in out and 'x02(sp)=00000002' in out


def test_interactive_run(prog, monkeypatch, capsys):
    keys = iter([readchar.key.ENTER, 'r'])
    monkeypatch.setattr(readchar, 'readkey', lambda: next(keys))
    main([prog, '-i'])
    assert 'x03(gp)=00000008' in capsys.readouterr().out


def test_assembly_error_exits(tmp_path, capsys):
    p = tmp_path / 'bad.s'
    p.write_text('addi x1,x0,5\nadd x1,x2,x40\n')
    with pytest.raises(SystemExit) as e:
        main([str(p)])
    assert e.value.code == 1
    assert 'error: Line 2' in capsys.readouterr().out


@pytest.mark.parametrize('keys', [[' ', ' ', ' '], ['r', 'r'], [' ', 'r', ' ']])
def test_interactive_limit_spans_session(prog, monkeypatch, capsys, keys):
    keys = iter(keys)
    monkeypatch.setattr(readchar, 'readkey', lambda: next(keys))
    main([prog, '-i', '-l', '2'])
    out = capsys.readouterr().out
    assert 'pc=00000008 cycle=2 halted=False' in out
    assert 'x03(gp)=fffffffd' in out
