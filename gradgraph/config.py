# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
""" Settings of the backward graph construction, read from a YAML file and checked against ``config_schema.yml``. """
import contextlib
import copy
import os
from typing import Any, Dict
import yaml


@contextlib.contextmanager
def set_temporary(*path, value):
    """ Sets the entry at ``path`` to ``value`` inside the context only.

        :Example:

            with set_temporary("autodiff", "accumulation_op", value="add"):
                grad = backward(net)
    """
    old_value = Config.get(*path)
    Config.set(*path, value=value)
    try:
        yield
    finally:
        Config.set(*path, value=old_value)


@contextlib.contextmanager
def temporary_config():
    """
    Restores every entry to its value on entry when the context exits.

    with temporary_config():
        Config.set("debugprint", value=True)
        Config.set("autodiff", "validate", value=False)
        backward(net)
    """
    saved, saved_filename = copy.deepcopy(Config._config), Config._cfg_filename
    try:
        yield
    finally:
        Config._config, Config._cfg_filename = saved, saved_filename


def _env2bool(envval):
    """ Interprets an environment variable value as a boolean flag. """
    return str(envval).lower() in ['true', '1', 'y', 'yes', 'on']


def _add_defaults(config: Dict[str, Any], schema: Dict[str, Any]):
    """ Fills in the schema default of every entry missing from ``config``, recursing into sections. """
    for key, entry in schema.items():
        if entry['type'] == 'dict':
            _add_defaults(config.setdefault(key, {}), entry['required'])
        elif key not in config:
            config[key] = entry['default']


def _split_keys(key_hierarchy):
    # Config.get("autodiff.validate") is Config.get("autodiff", "validate")
    if len(key_hierarchy) == 1 and '.' in key_hierarchy[0]:
        return tuple(key_hierarchy[0].split('.'))
    return key_hierarchy


class Config(object):
    """ Hierarchical gradgraph settings.

        Entries are looked up by their path in the schema, e.g., ``Config.get("autodiff", "accumulation_op")``.
        Sources, by priority: ``GRADGRAPH_<path joined by _>`` environment variables, ``.gradgraph.conf`` in the
        working directory, the file named by ``GRADGRAPH_CONFIG`` (or ``~/.gradgraph.conf``), and the schema defaults.
    """

    default_filename = '.gradgraph.conf'
    env_prefix = 'GRADGRAPH_'
    _config = {}
    _config_metadata = {}
    _cfg_filename = None

    @staticmethod
    def cfg_filename():
        """ Returns the path of the loaded configuration file, or None if only defaults are in use. """
        return Config._cfg_filename

    @staticmethod
    def initialize():
        """ Loads the schema and the first configuration file found. Runs when the module is imported. """
        if Config._config_metadata:
            return

        Config.load_schema()

        user_cfg = os.environ.get('GRADGRAPH_CONFIG', os.path.join(os.path.expanduser('~'), Config.default_filename))
        for filename in (Config.default_filename, user_cfg):
            if os.path.isfile(filename):
                Config.load(filename)
                return

        Config._config = {}
        _add_defaults(Config._config, Config._config_metadata['required'])

    @staticmethod
    def load(filename=None):
        """ Replaces the current settings with those of a YAML file, filling in defaults for missing entries.

            :param filename: The file to load. Defaults to the currently loaded file.
        """
        filename = filename or Config._cfg_filename
        with open(filename, 'r') as f:
            Config._config = yaml.load(f.read(), Loader=yaml.SafeLoader) or {}
        Config._cfg_filename = filename
        _add_defaults(Config._config, Config._config_metadata['required'])

    @staticmethod
    def load_schema(filename=None):
        """ Loads the schema holding the type and default value of every entry.

            :param filename: The schema file. Defaults to the ``config_schema.yml`` shipped with the package.
        """
        if filename is None:
            filename = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config_schema.yml')
        with open(filename, 'r') as f:
            Config._config_metadata = yaml.load(f.read(), Loader=yaml.SafeLoader)

    @staticmethod
    def save(path=None):
        """ Writes the entries that differ from their defaults to a YAML file.

            :param path: The file to write. Defaults to the currently loaded file.
        """
        path = path or Config._cfg_filename
        if path is None:
            raise ValueError('No configuration file is loaded, a path to save to is required')
        with open(path, 'w') as f:
            yaml.dump(Config.nondefaults(), f, default_flow_style=False)

    @staticmethod
    def get_metadata(*key_hierarchy):
        """ Returns the schema entry (type, default, title, description) at the given path. """
        entry = Config._config_metadata
        for key in _split_keys(key_hierarchy):
            entry = entry['required'][key]
        return entry

    @staticmethod
    def get_default(*key_hierarchy):
        return Config.get_metadata(*key_hierarchy)['default']

    @staticmethod
    def get(*key_hierarchy):
        """ Returns the current value of an entry.

            :param key_hierarchy: The path of the entry, as separate keys (``'autodiff', 'validate'``) or dotted
                                  (``'autodiff.validate'``).
            :return: The environment override if one is set (as a string), otherwise the configured value.
        """
        key_hierarchy = _split_keys(key_hierarchy)

        envvar = Config.env_prefix + '_'.join(key_hierarchy)
        if envvar in os.environ:
            return os.environ[envvar]

        value = Config._config
        for key in key_hierarchy:
            value = value[key]
        return value

    @staticmethod
    def get_bool(*key_hierarchy):
        """ Returns a boolean entry, accepting string values such as ``"1"`` or ``"yes"`` from the environment. """
        res = Config.get(*key_hierarchy)
        if isinstance(res, bool):
            return res
        return _env2bool(res)

    @staticmethod
    def set(*key_hierarchy, value=None):
        """ Sets an entry in memory, e.g., ``Config.set('autodiff', 'accumulation_op', value='add')``. """
        key_hierarchy = _split_keys(key_hierarchy)

        section = Config._config
        for key in key_hierarchy[:-1]:
            section = section[key]
        section[key_hierarchy[-1]] = value

    @staticmethod
    def nondefaults() -> Dict[str, Any]:
        """ Returns the entries whose values differ from the schema defaults, nested as in the file. """

        def changed(conf: Dict[str, Any], schema: Dict[str, Any]) -> Dict[str, Any]:
            result = {}
            for key, entry in schema.items():
                if key not in conf:
                    continue
                if entry['type'] == 'dict':
                    section = changed(conf[key], entry['required'])
                    if section:
                        result[key] = section
                elif conf[key] != entry['default']:
                    result[key] = conf[key]
            return result

        return changed(Config._config, Config._config_metadata['required'])


Config.initialize()
