import csv
import os

import pytest

import timing_utils
from main import build_parser, main


def read_rows(path):
    with open(path, newline='') as f:
        return list(csv.DictReader(f))


@pytest.fixture(autouse=True)
def restore_timing_flag(monkeypatch):
    monkeypatch.setattr(timing_utils, 'ENABLE_TIMING', timing_utils.ENABLE_TIMING)


class TestMain:
    def test_renders_consecutive_seeds(self, tmp_path) -> None:
        log_dir = tmp_path / "logs"
        status = main(['--seed', '0', '--count', '3', '--width', '4', '--height', '3',
                       '--log_dir', str(log_dir)])
        assert status == 0
        assert sorted(os.listdir(log_dir / "images")) == ['0.png', '1.png', '2.png']
        rows = read_rows(log_dir / "renders.csv")
        assert [row['seed'] for row in rows] == ['0', '1', '2']
        assert rows[0]['expression'] == '[x, x, x]'
        assert rows[0]['width'] == '4'

    def test_reverse_walks_backwards(self, tmp_path) -> None:
        out = tmp_path / "out"
        status = main(['--seed', '1', '--count', '3', '--reverse', '--width', '2', '--height', '2',
                       '--log_dir', str(tmp_path / "logs"), '--output_dir', str(out)])
        assert status == 0
        assert sorted(os.listdir(out)) == ['-1.png', '0.png', '1.png']

    def test_show_expression_and_timing(self, tmp_path, capsys) -> None:
        status = main(['--width', '2', '--height', '2', '--show_expression', '--time_it',
                       '--log_dir', str(tmp_path)])
        assert status == 0
        captured = capsys.readouterr().out
        assert '0: [x, x, x]' in captured
        assert 'synthesize' in captured

    @pytest.mark.parametrize("argv", [
        ['--width', '0'],
        ['--height', '-2'],
        ['--count', '0'],
        ['--max_depth', '1'],
    ])
    def test_invalid_arguments_exit(self, tmp_path, argv) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(argv + ['--log_dir', str(tmp_path)])
        assert excinfo.value.code == 2

    def test_defaults(self) -> None:
        args = build_parser().parse_args([])
        assert args.seed == 0
        assert args.count == 1
        assert args.max_depth == 5
        assert args.device == 'cpu'
