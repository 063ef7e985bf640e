import logging

import numpy as np

from noisymin.function_generators.fun_noisy import Parabola3D
from noisymin.linesearch import multi_line_min
from noisymin.log_manager import LogLevel, LogManager
from noisymin.noisy_value import NoisyIOPair, NoisyValue


def test_levels():
    log = LogManager(name='noisymin.test_levels')
    assert log.get_log_level() == LogLevel.OFF
    assert not log.is_logging_on()
    assert not log.should_log(LogLevel.NORMAL)

    log.set_logging_on()
    assert log.is_logging_on() and not log.is_verbose()
    assert log.should_log(LogLevel.NORMAL)
    assert not log.should_log(LogLevel.VERBOSE)

    log.set_logging_on(verbose=True)
    assert log.is_verbose()
    assert log.should_log(LogLevel.VERBOSE)
    assert not log.should_log(LogLevel.OFF)

    log.set_log_level(LogLevel.NORMAL)
    assert log.get_log_level() == LogLevel.NORMAL
    log.set_logging_off()
    assert not log.is_logging_on()


def test_writes_to_file_by_level(tmp_path):
    path = tmp_path / 'out.log'
    log = LogManager(LogLevel.NORMAL, name='noisymin.test_file', file_path=str(path))
    assert log.file_path == str(path)
    log.log_string("normal message")
    log.log_string("verbose message", LogLevel.VERBOSE)
    text = path.read_text()
    assert "normal message" in text
    assert "verbose message" not in text


def test_disabled_manager_writes_nothing(tmp_path):
    path = tmp_path / 'off.log'
    log = LogManager(name='noisymin.test_off', file_path=str(path))
    log.log_string("hidden")
    log.log_noisy_value(NoisyValue(1.0, 0.1))
    log.log_vector(np.zeros(2))
    assert path.read_text() == ''


def test_stdout_and_redirect(tmp_path, capsys):
    log = LogManager(LogLevel.NORMAL, name='noisymin.test_redirect')
    log.log_string("to stdout")
    assert "to stdout" in capsys.readouterr().out

    path = tmp_path / 'redirected.log'
    log.set_log_file(str(path))
    log.log_string("to file")
    assert "to file" in path.read_text()
    assert "to file" not in capsys.readouterr().out


def test_message_formats(tmp_path):
    path = tmp_path / 'fmt.log'
    log = LogManager(LogLevel.VERBOSE, name='noisymin.test_formats', file_path=str(path))
    log.log_noisy_iopair(NoisyIOPair([1.0, 2.0], NoisyValue(3.0, 0.5)), name='Start')
    log.log_noisy_vector([NoisyValue(0.5, 0.1)], print_errors=False, name='Gradient')
    log.log_noisy_value(NoisyValue(1.5, 0.25), name='Value')
    lines = path.read_text().splitlines()
    assert lines[0] == "Start: x0 = 1.0    x1 = 2.0    ->    f = 3.0 +- 0.5"
    assert lines[1] == "Gradient: g0 = 0.5"
    assert lines[2] == "Value: f = 1.5 +- 0.25"


def test_managers_keep_separate_destinations(tmp_path):
    one, two = tmp_path / 'one.log', tmp_path / 'two.log'
    first = LogManager(LogLevel.NORMAL, file_path=str(one))
    second = LogManager(LogLevel.NORMAL, file_path=str(two))
    first.log_string("from first")
    second.log_string("from second")
    assert one.read_text() == "from first\n"
    assert two.read_text() == "from second\n"
    assert first.file_path == str(one)
    assert second.file_path == str(two)
    first.close()
    second.close()


def test_close_and_reopen(tmp_path):
    path = tmp_path / 'reopen.log'
    log = LogManager(LogLevel.NORMAL, file_path=str(path))
    log.log_string("before")
    log.close()
    log.log_string("after")
    assert path.read_text() == "before\nafter\n"
    log.close()


def test_disabled_managers_do_not_create_loggers():
    before = set(logging.Logger.manager.loggerDict)
    fun = Parabola3D()
    start = NoisyIOPair([2.5, 1.0, -1.0], fun([2.5, 1.0, -1.0]))
    multi_line_min(fun, start, [-5.0, -4.0, 6.0])
    LogManager().log_string("ignored")
    assert set(logging.Logger.manager.loggerDict) == before
