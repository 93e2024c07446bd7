# finance_ledger/outputs/__init__.py
from importlib import import_module


def get_output(name, config):
    modules = config.get('output_modules', {})
    if name not in modules:
        raise KeyError(f"Unknown output '{name}'. Available: {', '.join(sorted(modules))}")
    module_name, cls_name = modules[name].rsplit('.', 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)(config)
