"""
Lab configuration loaded from lab_config.yaml and CDK context
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), '..', 'lab_config.yaml')

RULE_PACKAGE_KEYS = ('CVE', 'CIS', 'SBP', 'RBA')

# CDK context key -> LabConfig attribute
CONTEXT_OVERRIDES = {
    'namePrefix': 'name_prefix',
    'projectTag': 'project_tag',
    'randomStringLength': 'random_string_length',
}


class LabConfigError(ValueError):
    """Raised at synth time when the lab configuration is unusable"""


@dataclass
class LabConfig:
    """Constants shared by every construct in the lab stack"""
    name_prefix: str = 'esslab'
    project_tag: str = 'esslab'
    random_string_length: int = 12
    log_expiration_days: int = 1
    multipart_abort_days: int = 1
    max_session_duration_hours: int = 12
    administrator_managed_policies: List[str] = field(default_factory=list)
    operator_managed_policies: List[str] = field(default_factory=list)
    assessment_duration_seconds: int = 900
    rule_package: str = 'CVE'
    region_rule_packages: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def supports_region(self, region: str) -> bool:
        return region in self.region_rule_packages

    def validate(self) -> None:
        """Check the invariants the constructs rely on"""
        if not self.name_prefix:
            raise LabConfigError("name_prefix must not be empty")
        if not self.project_tag:
            raise LabConfigError("project_tag must not be empty")
        if isinstance(self.random_string_length, bool) or not isinstance(self.random_string_length, int):
            raise LabConfigError(
                f"random_string_length must be an integer, got {self.random_string_length!r}")
        if self.random_string_length <= 0:
            raise LabConfigError(
                f"random_string_length must be positive, got {self.random_string_length}")
        if self.rule_package not in RULE_PACKAGE_KEYS:
            raise LabConfigError(f"Unknown rule package {self.rule_package}")
        if not self.region_rule_packages:
            raise LabConfigError("region_rule_packages must map at least one region")

        for region, packages in self.region_rule_packages.items():
            missing = [key for key in RULE_PACKAGE_KEYS if key not in packages]
            if missing:
                raise LabConfigError(
                    f"Region {region} is missing rule packages: {', '.join(missing)}")


def _parse_length(value: Any, source: str) -> int:
    """Accept an int or a numeric string; booleans are never lengths"""
    if isinstance(value, bool):
        raise LabConfigError(f"{source} must be an integer, got {value!r}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise LabConfigError(f"{source} must be an integer, got {value!r}")


def _from_document(document: Dict[str, Any]) -> LabConfig:
    """Flatten the nested YAML document into LabConfig fields"""
    bucket = document.get('logging_bucket', {}) or {}
    roles = document.get('roles', {}) or {}
    inspector = document.get('inspector', {}) or {}
    defaults = LabConfig()

    return LabConfig(
        name_prefix=document.get('name_prefix', defaults.name_prefix),
        project_tag=document.get('project_tag', defaults.project_tag),
        random_string_length=_parse_length(
            document.get('random_string_length', defaults.random_string_length), 'random_string_length'),
        log_expiration_days=bucket.get('log_expiration_days', defaults.log_expiration_days),
        multipart_abort_days=bucket.get('multipart_abort_days', defaults.multipart_abort_days),
        max_session_duration_hours=roles.get(
            'max_session_duration_hours', defaults.max_session_duration_hours),
        administrator_managed_policies=list(roles.get('administrator_managed_policies', [])),
        operator_managed_policies=list(roles.get('operator_managed_policies', [])),
        assessment_duration_seconds=inspector.get(
            'assessment_duration_seconds', defaults.assessment_duration_seconds),
        rule_package=inspector.get('rule_package', defaults.rule_package),
        region_rule_packages=dict(document.get('region_rule_packages', {}) or {}),
    )


def load_lab_config(path: Optional[str] = None,
                    overrides: Optional[Dict[str, Any]] = None) -> LabConfig:
    """
    Load the lab configuration.

    Values come from the YAML file at ``path`` (lab_config.yaml by default),
    then from ``overrides`` keyed by CDK context names (``namePrefix``,
    ``projectTag``, ``randomStringLength``). The result is validated before
    it is returned.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    try:
        with open(config_path, 'r') as f:
            document = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise LabConfigError(f"Lab configuration not found: {config_path}")
    except yaml.YAMLError as e:
        raise LabConfigError(f"Could not parse {config_path}: {e}")

    if not isinstance(document, dict):
        raise LabConfigError(f"{config_path} must contain a mapping")

    config = _from_document(document)

    for context_key, attribute in CONTEXT_OVERRIDES.items():
        value = (overrides or {}).get(context_key)
        if value is None:
            continue
        if attribute == 'random_string_length':
            value = _parse_length(value, context_key)
        setattr(config, attribute, value)

    config.validate()
    return config
