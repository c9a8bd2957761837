from pathlib import Path
from typing import Any, Dict, Union
import json
import os

CONFIG_ENV_VAR = 'SOLOBIT_CONFIG'


def abs_path(file_name: str) -> Path:
    """
    computes the absolute path of the file (based on this root dir)
    :return: absolute path
    """
    return Path(__file__).parent.joinpath(file_name)


def config_path(path: Union[str, None] = None) -> Path:
    """
    path of the config file in use: the given path, else $SOLOBIT_CONFIG if set, else the bundled config.json
    """
    override = path or os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return abs_path('config.json')


def load_configuration(overrides: Union[Dict[str, Any], None] = None, path: Union[str, None] = None) -> Dict[str, Any]:
    """
    reads every setting, the bundled defaults are used for anything the file leaves out
    :param overrides: settings that win over the file (e.g. from the command line), None values are ignored
    :param path: config file to read on top of the defaults
    :return: settings dict
    """
    with open(abs_path('config.json'), 'r') as json_file:
        configs: Dict[str, Any] = json.load(json_file)

    path = config_path(path)
    if path != abs_path('config.json'):
        with open(path, 'r') as json_file:
            configs.update(json.load(json_file))

    if overrides:
        configs.update({key: value for key, value in overrides.items() if value is not None})

    peer_id = configs.get('peer_id')
    if not isinstance(peer_id, str) or len(peer_id.encode('utf-8')) != 20:
        raise ValueError(f"peer_id in {path} must be a 20 bytes string, got {peer_id!r}")
    return configs


def get_configuration(config_to_get: str) -> Any:
    """
    gets a configuration from the config file
    :param config_to_get: what setting to get
    :return: Any | None if there is no such setting
    """
    return load_configuration().get(config_to_get)
