import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from novel_architect.cli import cli
from novel_architect.storage import STORAGE_KEY

from conftest import SAMPLE_DRAFT


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def sample_config(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(f"""
storage:
  root: {tmp_path / "projects"}
""", encoding="utf-8")
    return config_file


@pytest.fixture(autouse=True)
def scripted(generator):
    with patch('novel_architect.cli.GeminiGenerator', return_value=generator):
        yield generator


def _record(tmp_path):
    path = tmp_path / "projects" / f"{STORAGE_KEY}.json"
    return json.loads(path.read_text(encoding="utf-8"))


def test_cli_help(runner):
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    for command in ('idea', 'outline', 'character', 'assist', 'analyze', 'rankings', 'clear'):
        assert command in result.output


def test_idea_command(runner, sample_config, tmp_path):
    result = runner.invoke(cli, ['-c', str(sample_config), 'idea', '-g', '都市/系统'])
    assert result.exit_code == 0
    assert '开局签到荒古圣体' in result.output
    assert _record(tmp_path)['idea']['title'] == '开局签到荒古圣体'


def test_outline_requires_idea(runner, sample_config, scripted):
    result = runner.invoke(cli, ['-c', str(sample_config), 'outline'])
    assert result.exit_code == 1
    assert '请先生成小说创意' in result.output
    assert scripted.called('generate_outline') == 0


def test_idea_then_outline(runner, sample_config, tmp_path):
    runner.invoke(cli, ['-c', str(sample_config), 'idea'])
    result = runner.invoke(cli, ['-c', str(sample_config), 'outline', '-n', '2'])
    assert result.exit_code == 0
    assert len(_record(tmp_path)['outline']) == 2


def test_character_command(runner, sample_config, tmp_path):
    result = runner.invoke(cli, ['-c', str(sample_config), 'character', '--no-outline'])
    assert result.exit_code == 0
    assert _record(tmp_path)['characters'][0]['name'] == '李明'


def test_write_and_append(runner, sample_config, tmp_path):
    draft = tmp_path / "draft.txt"
    draft.write_text("第一段。", encoding="utf-8")

    runner.invoke(cli, ['-c', str(sample_config), 'write', str(draft)])
    result = runner.invoke(cli, ['-c', str(sample_config), 'write', '--append', '-'], input="第二段。")
    assert result.exit_code == 0
    assert _record(tmp_path)['content'] == "第一段。第二段。"


def test_assist_command(runner, sample_config, tmp_path):
    runner.invoke(cli, ['-c', str(sample_config), 'write', '-'], input="他推开了门。")
    result = runner.invoke(cli, ['-c', str(sample_config), 'assist', 'continue'])
    assert result.exit_code == 0
    assert _record(tmp_path)['content'] == "他推开了门。 他握紧了拳头。"


def test_assist_rejects_unknown_mode(runner, sample_config):
    result = runner.invoke(cli, ['-c', str(sample_config), 'assist', 'rewrite'])
    assert result.exit_code == 2


def test_analyze_short_draft(runner, sample_config, scripted):
    runner.invoke(cli, ['-c', str(sample_config), 'write', '-'], input="太短了")
    result = runner.invoke(cli, ['-c', str(sample_config), 'analyze'])
    assert result.exit_code == 1
    assert '请至少输入50字进行检测' in result.output
    assert scripted.called('analyze') == 0


def test_analyze_review(runner, sample_config, tmp_path):
    runner.invoke(cli, ['-c', str(sample_config), 'write', '-'], input=SAMPLE_DRAFT)
    # replace the first, ignore the second, skip the stale third
    result = runner.invoke(cli, ['-c', str(sample_config), 'analyze', '--review'], input="r\ni\ns\n")
    assert result.exit_code == 0
    assert '72/100' in result.output
    assert '未在编辑器中找到该片段' in result.output

    content = _record(tmp_path)['content']
    assert '他飞快地走向森林。' in content
    assert '首先，他检查了行囊；其次，' in content


def test_analyze_review_alternative(runner, sample_config, tmp_path):
    runner.invoke(cli, ['-c', str(sample_config), 'write', '-'], input=SAMPLE_DRAFT)
    result = runner.invoke(cli, ['-c', str(sample_config), 'analyze', '--review'], input="a\n2\nq\n")
    assert result.exit_code == 0
    assert '他一溜烟地走向森林。' in _record(tmp_path)['content']


def test_remote_failure(runner, sample_config, scripted):
    scripted.error = RuntimeError("quota exceeded")
    result = runner.invoke(cli, ['-c', str(sample_config), 'rankings'])
    assert result.exit_code == 1
    assert 'quota exceeded' in result.output


def test_rankings_command(runner, sample_config):
    result = runner.invoke(cli, ['-c', str(sample_config), 'rankings'])
    assert result.exit_code == 0
    assert '系统流依旧火热' in result.output


def test_show_and_save(runner, sample_config, tmp_path):
    runner.invoke(cli, ['-c', str(sample_config), 'idea'])
    result = runner.invoke(cli, ['-c', str(sample_config), 'show'])
    assert result.exit_code == 0
    assert '开局签到荒古圣体' in result.output

    result = runner.invoke(cli, ['-c', str(sample_config), 'save'])
    assert result.exit_code == 0
    assert 'Saved' in result.output


def test_clear_command(runner, sample_config, tmp_path):
    runner.invoke(cli, ['-c', str(sample_config), 'idea'])
    result = runner.invoke(cli, ['-c', str(sample_config), 'clear', '--yes'])
    assert result.exit_code == 0
    assert not (tmp_path / "projects" / f"{STORAGE_KEY}.json").exists()


def test_save_failure_is_reported(runner, sample_config):
    runner.invoke(cli, ['-c', str(sample_config), 'idea'])
    with patch('novel_architect.storage.JsonFileStore.set', side_effect=OSError("disk full")):
        result = runner.invoke(cli, ['-c', str(sample_config), 'save'])
    assert result.exit_code == 0
    assert 'Save failed' in result.output
    assert 'Saved' not in result.output
