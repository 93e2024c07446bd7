import csv

import yaml
from click.testing import CliRunner

from finance_ledger.cli import main as cli
from finance_ledger.database import LedgerStore


def _invoke(tmp_path, *args, config=None):
    cfg_path = config or tmp_path / 'missing.yaml'
    db_path = tmp_path / 'ledger.db'
    runner = CliRunner()
    return runner.invoke(cli, ['--config', str(cfg_path), '--db', str(db_path), *args])


def write_config(tmp_path, **overrides):
    cfg = {'output_dir': str(tmp_path / 'data')}
    cfg.update(overrides)
    path = tmp_path / 'ledgerly.yaml'
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(cfg, f, allow_unicode=True)
    return path


def test_add_list_stats(tmp_path):
    res = _invoke(tmp_path, 'add', '50', '餐饮', '--date', '2024-01-01', '--description', 'lunch')
    assert res.exit_code == 0, res.output
    assert 'Added transaction 1.' in res.output

    res = _invoke(tmp_path, 'add', '1000', '工资', '--type', 'income', '--date', '2024-01-01')
    assert res.exit_code == 0, res.output

    res = _invoke(tmp_path, 'list')
    assert res.exit_code == 0, res.output
    lines = res.output.strip().splitlines()
    assert len(lines) == 2
    assert '工资' in lines[0]
    assert 'lunch' in lines[1]

    res = _invoke(tmp_path, 'stats')
    assert res.exit_code == 0, res.output
    assert 'Income:  1000.00' in res.output
    assert 'Expense: 50.00' in res.output
    assert 'Balance: 950.00' in res.output


def test_add_rejects_invalid_amount(tmp_path):
    res = _invoke(tmp_path, 'add', '0', '餐饮', '--date', '2024-01-01')
    assert res.exit_code == 2
    assert 'amount must be positive' in res.output
    assert LedgerStore(tmp_path / 'ledger.db').list() == []


def test_delete_reports_success_for_missing_id(tmp_path):
    _invoke(tmp_path, 'add', '5', '交通', '--date', '2024-01-01')

    res = _invoke(tmp_path, 'delete', '1')
    assert res.exit_code == 0, res.output
    assert 'Deleted transaction 1.' in res.output

    res = _invoke(tmp_path, 'delete', '1')
    assert res.exit_code == 0, res.output
    assert 'nothing removed' in res.output


def test_categories_and_daily(tmp_path):
    _invoke(tmp_path, 'add', '10', '交通', '--date', '2024-01-01')
    _invoke(tmp_path, 'add', '30', '餐饮', '--date', '2024-01-02')
    _invoke(tmp_path, 'add', '5', '餐饮', '--date', '2024-01-02')

    res = _invoke(tmp_path, 'categories')
    assert res.exit_code == 0, res.output
    assert res.output.strip().splitlines() == ['餐饮: 35.00', '交通: 10.00']

    res = _invoke(tmp_path, 'categories', '--type', 'income')
    assert 'No income records.' in res.output

    res = _invoke(tmp_path, 'daily')
    assert res.exit_code == 0, res.output
    headers = [l for l in res.output.splitlines() if not l.startswith(' ')]
    assert headers == ['2024-01-02  expense 35.00', '2024-01-01  expense 10.00']


def test_import_and_export(tmp_path):
    manual = tmp_path / 'manual.yaml'
    manual.write_text(
        """\
- date: 2024-01-01
  amount: 50
  category: 餐饮
  description: lunch
- date: 2024-01-02
  type: income
  amount: 1000
  category: 工资
""",
        encoding='utf-8',
    )
    cfg_path = write_config(tmp_path)

    res = _invoke(tmp_path, 'import', str(manual), config=cfg_path)
    assert res.exit_code == 0, res.output
    assert 'Imported 2 transaction(s).' in res.output

    res = _invoke(tmp_path, 'export', config=cfg_path)
    assert res.exit_code == 0, res.output
    out_csv = tmp_path / 'data' / 'ledger.csv'
    with open(out_csv, encoding='utf-8') as f:
        rows = list(csv.reader(f))
    assert rows[0] == ['id', 'date', 'type', 'category', 'description', 'amount', 'created_at']
    assert [r[1] for r in rows[1:]] == ['2024-01-02', '2024-01-01']
    assert rows[2][5] == '50.00'


def test_import_stops_at_invalid_entry(tmp_path):
    manual = tmp_path / 'manual.yaml'
    manual.write_text(
        """\
- date: 2024-01-01
  amount: 50
  category: 餐饮
- date: 2024-01-02
  amount: -3
  category: 餐饮
""",
        encoding='utf-8',
    )
    res = _invoke(tmp_path, 'import', str(manual))
    assert res.exit_code == 1
    assert 'entry 2' in res.output
    assert len(LedgerStore(tmp_path / 'ledger.db').list()) == 1


def test_export_unknown_output(tmp_path):
    res = _invoke(tmp_path, 'export', '--output', 'sheets')
    assert res.exit_code == 2
    assert "Unknown output 'sheets'" in res.output


def test_enforced_categories_from_config(tmp_path):
    cfg_path = write_config(tmp_path, enforce_categories=True)
    res = _invoke(tmp_path, 'add', '5', 'coffee', '--date', '2024-01-01', config=cfg_path)
    assert res.exit_code == 2
    assert "not allowed for expense" in res.output

    res = _invoke(tmp_path, 'add', '5', '餐饮', '--date', '2024-01-01', config=cfg_path)
    assert res.exit_code == 0, res.output


def test_advice_on_empty_ledger(tmp_path):
    res = _invoke(tmp_path, 'advice')
    assert res.exit_code == 0, res.output
    assert 'No transactions to analyze' in res.output


def test_init_config_writes_defaults(tmp_path):
    target = tmp_path / 'conf' / 'ledgerly.yaml'
    res = CliRunner().invoke(cli, ['--config', str(target), 'init-config', str(target)])
    assert res.exit_code == 0, res.output
    data = yaml.safe_load(target.read_text(encoding='utf-8'))
    assert data['db_path'] == 'ledger.db'
    assert '餐饮' in data['categories']['expense']


def test_import_reports_malformed_yaml(tmp_path):
    manual = tmp_path / 'manual.yaml'
    manual.write_text("- date: [unclosed\n  amount: 5\n", encoding='utf-8')
    res = _invoke(tmp_path, 'import', str(manual))
    assert res.exit_code == 1
    assert f'Error loading {manual}' in res.output
    assert 'Traceback' not in res.output


def test_advice_with_misconfigured_provider(tmp_path, monkeypatch):
    monkeypatch.setenv('LEDGERLY_LLM_PROVIDER', 'openai')
    monkeypatch.delenv('OPENAI_API_KEY', raising=False)
    res = _invoke(tmp_path, 'add', '50', '餐饮', '--date', '2024-01-01')
    assert res.exit_code == 0, res.output

    res = _invoke(tmp_path, 'advice')
    assert res.exit_code == 0, res.output
    assert 'Error contacting LLM: OPENAI_API_KEY not set' in res.output
