"""
Checks of the loaded operator settings against the rules in
config_validation.yaml. Each rule names a type and its optional bounds:

    number:  min, max
    str:     min_len, max_len
    bool
    enum:    values
"""

# Standard
from typing import Any, Callable, Dict, List, Optional
import numbers

# First Party
import aconfig
import alog

log = alog.use_channel("CONFG")


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid number setting
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _check_number(
    value: Any,
    min: Optional[float] = None,  # pylint: disable=redefined-builtin
    max: Optional[float] = None,  # pylint: disable=redefined-builtin
) -> bool:
    return (
        _is_number(value)
        and (min is None or value >= min)
        and (max is None or value <= max)
    )


def _check_str(
    value: Any, min_len: Optional[int] = None, max_len: Optional[int] = None
) -> bool:
    return (
        isinstance(value, str)
        and (min_len is None or len(value) >= min_len)
        and (max_len is None or len(value) <= max_len)
    )


def _check_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _check_enum(value: Any, values: List[Any]) -> bool:
    return value in values


RULE_CHECKS: Dict[str, Callable[..., bool]] = {
    "number": _check_number,
    "str": _check_str,
    "bool": _check_bool,
    "enum": _check_enum,
}


def get_invalid_params(
    config: aconfig.Config,
    validation_config: aconfig.Config,
) -> List[str]:
    """Get a list of any settings that fail their validation rule. A rule with
    an unknown type or unknown bounds fails too.

    Args:
        config:  aconfig.Config
            The parsed config with any override values
        validation_config:  aconfig.Config
            The rule for each key

    Returns:
        invalid_params:  List[str]
            The keys of all settings that fail validation
    """
    invalid_params = []
    for key, rule in validation_config.items():
        rule_args = dict(rule)
        check = RULE_CHECKS.get(rule_args.pop("type", None))
        value = config.get(key)
        try:
            valid = check is not None and check(value, **rule_args)
        except TypeError:
            log.warning("Malformed validation rule for [%s]: %s", key, dict(rule))
            valid = False
        if not valid:
            log.warning("Found invalid config key [%s]: %s", key, value)
            invalid_params.append(key)
    return invalid_params
