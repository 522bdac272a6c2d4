import json
from unittest.mock import patch

import pytest

from src import config


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    for var in ('PAGESMITH_PORT', 'PAGESMITH_TRUSTED_ORIGINS', 'PAGESMITH_AUTO_PUSH', 'PAGESMITH_SITES_DIR'):
        monkeypatch.delenv(var, raising=False)
    path = tmp_path / 'config.json'
    with patch('src.config.get_config_path', return_value=path):
        yield path


def write(path, data):
    path.write_text(json.dumps(data), encoding='utf-8')


def test_defaults(config_file):
    assert config.load_config() == {}
    assert config.get_port() == config.DEFAULT_PORT
    assert config.get_trusted_origins() == ['http://localhost:8081', 'http://127.0.0.1:8081']
    assert config.get_auto_push() is False


def test_unreadable_config_is_ignored(config_file):
    config_file.write_text('{oops', encoding='utf-8')
    assert config.load_config() == {}


def test_port_from_config_and_env(config_file, monkeypatch):
    write(config_file, {'port': 9000})
    assert config.get_port() == 9000
    assert config.get_trusted_origins() == ['http://localhost:9000', 'http://127.0.0.1:9000']

    monkeypatch.setenv('PAGESMITH_PORT', '9100')
    assert config.get_port() == 9100

    monkeypatch.setenv('PAGESMITH_PORT', 'not-a-port')
    assert config.get_port() == config.DEFAULT_PORT


def test_trusted_origins_sources(config_file, monkeypatch):
    write(config_file, {'trusted_origins': ['https://editor.example/', 'https://other.example']})
    assert config.get_trusted_origins() == ['https://editor.example', 'https://other.example']

    write(config_file, {'trusted_origins': 'https://a.example, https://b.example'})
    assert config.get_trusted_origins() == ['https://a.example', 'https://b.example']

    monkeypatch.setenv('PAGESMITH_TRUSTED_ORIGINS', 'https://env.example,')
    assert config.get_trusted_origins() == ['https://env.example']


@pytest.mark.parametrize('value,expected', [('1', True), ('yes', True), ('off', False), ('', False)])
def test_auto_push_env(config_file, monkeypatch, value, expected):
    monkeypatch.setenv('PAGESMITH_AUTO_PUSH', value)
    assert config.get_auto_push() is expected


def test_set_auto_push_round_trips(config_file):
    write(config_file, {'port': 9000})
    config.set_auto_push(True)

    saved = json.loads(config_file.read_text(encoding='utf-8'))
    assert saved == {'port': 9000, 'auto_push': True}
    assert config.get_auto_push() is True


def test_sites_path(config_file, monkeypatch, tmp_path):
    write(config_file, {'sites_dir': 'pages'})
    assert config.get_sites_path() == tmp_path / 'pages'

    monkeypatch.setenv('PAGESMITH_SITES_DIR', str(tmp_path / 'elsewhere'))
    assert config.get_sites_path() == tmp_path / 'elsewhere'
