import pytest

from oflocker.config import Config, remote_locations_from
from oflocker.errors import ConfigError

CONFIG = """
local-share: /srv/share
remote-locations:
  - \\\\hostA\\share
  - s3://locks/site-b
exceptions: [".tmp", "~lock"]
check-interval: 2
log-verbosity: 3
"""


def _write(tmp_path, text):
    path = tmp_path / '.openfiles-locker.yml'
    path.write_text(text, encoding='utf-8')
    return str(path)


def test_load_and_merge(tmp_path):
    settings = Config.settings(_write(tmp_path, CONFIG), {})

    assert settings['local_share'] == '/srv/share'
    assert settings['remote_locations'] == ['\\\\hostA\\share', 's3://locks/site-b']
    assert settings['exceptions'] == ['.tmp', '~lock']
    assert settings['check_interval'] == 2.0
    assert settings['generation_interval'] == 5.0
    assert settings['snapshot_filename'] == 'openfiles.dat'
    assert settings['log_verbosity'] == 3
    assert settings['working_folder']


def test_cli_args_take_precedence(tmp_path):
    settings = Config.settings(_write(tmp_path, CONFIG), {
        'local_share': '/other',
        'check_interval': 10,
        'remote_locations': None,
    })

    assert settings['local_share'] == '/other'
    assert settings['check_interval'] == 10.0
    assert len(settings['remote_locations']) == 2


def test_missing_file_gives_empty_config(tmp_path):
    assert Config.load_config(str(tmp_path / 'absent.yml')) == {}


def test_invalid_yaml_raises(tmp_path):
    with pytest.raises(ConfigError):
        Config.load_config(_write(tmp_path, 'remote-locations: [unclosed\n'))


def test_local_share_is_required():
    with pytest.raises(ConfigError):
        Config.settings(None, {'remote_locations': ['/mnt/peer']})


def test_remote_locations_required_when_asked():
    with pytest.raises(ConfigError):
        Config.settings(None, {'local_share': '/srv/share'})

    settings = Config.settings(None, {'local_share': '/srv/share'}, require_remotes=False)
    assert settings['remote_locations'] == []


def test_bad_interval_raises():
    with pytest.raises(ConfigError):
        Config.settings(None, {'local_share': '/s', 'remote_locations': ['/p'], 'check_interval': 'soon'})


def test_remote_locations_from_flattens_commas():
    assert remote_locations_from(['/a,/b', '/c']) == ['/a', '/b', '/c']
    assert remote_locations_from(None) is None
