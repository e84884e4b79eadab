"""
Built-in secret patterns and false-positive filters

Every expression here uses bounded quantifiers so that a scan stays linear on
adversarial input.
"""

from typing import List

from ..rules.models import Severity
from .models import SecretPattern

# Lookups that read a value from the environment instead of embedding it
ENV_LOOKUP_EXCLUDES = [
    r'process\.env',
    r'\bos\.environ',
    r'getenv\(',
    r'\$\{',
    r'\{\{[^}\n]{0,100}\}\}',
]

BUILTIN_PATTERNS: List[SecretPattern] = [
    SecretPattern(
        name="aws_access_key",
        regex=r'\b(?:AKIA|ASIA)[0-9A-Z]{16}\b',
        severity=Severity.CRITICAL,
        description="AWS access key id",
    ),
    SecretPattern(
        name="aws_secret_key",
        regex=r'(?:aws_?)?secret_?(?:access_?)?key\w{0,10}["\']?\s*[=:]\s*["\'](?P<value>[A-Za-z0-9/+=]{40})["\']',
        severity=Severity.CRITICAL,
        description="AWS secret access key assignment",
        ignore_case=True,
    ),
    SecretPattern(
        name="github_token",
        regex=r'\bgh[pousr]_[A-Za-z0-9]{36,255}\b',
        severity=Severity.HIGH,
        description="GitHub personal, OAuth, app or refresh token",
    ),
    SecretPattern(
        name="stripe_secret_key",
        regex=r'\b[rs]k_live_[0-9A-Za-z]{4,99}\b',
        severity=Severity.CRITICAL,
        description="Stripe live secret or restricted key",
    ),
    SecretPattern(
        name="stripe_test_key",
        regex=r'\bsk_test_[0-9A-Za-z]{4,99}\b',
        severity=Severity.MEDIUM,
        description="Stripe test-mode secret key",
    ),
    SecretPattern(
        name="slack_token",
        regex=r'\bxox[abposr]-[0-9A-Za-z-]{10,72}',
        severity=Severity.HIGH,
        description="Slack API token",
    ),
    SecretPattern(
        name="google_api_key",
        regex=r'\bAIza[0-9A-Za-z_\-]{35}',
        severity=Severity.HIGH,
        description="Google API key",
    ),
    SecretPattern(
        name="private_key",
        regex=r'-----BEGIN (?:RSA |EC |DSA |OPENSSH |ENCRYPTED |PGP )?PRIVATE KEY(?: BLOCK)?-----',
        severity=Severity.CRITICAL,
        description="PEM encoded private key",
    ),
    SecretPattern(
        name="jwt_token",
        regex=r'\beyJ[A-Za-z0-9_-]{10,500}\.eyJ[A-Za-z0-9_-]{10,1000}\.[A-Za-z0-9_-]{10,500}',
        severity=Severity.HIGH,
        description="Signed JSON Web Token",
    ),
    SecretPattern(
        name="connection_string",
        regex=(r'\b(?:postgres(?:ql)?|mysql|mariadb|mongodb(?:\+srv)?|rediss?|amqps?|mssql)://'
               r'[^\s:/@"\']{0,100}:[^\s@/"\']{1,100}@[^\s"\'<>]{1,200}'),
        severity=Severity.HIGH,
        description="Database URL with embedded credentials",
        ignore_case=True,
    ),
    SecretPattern(
        name="password",
        regex=r'\b\w{0,30}?(?:password|passwd|pwd|pass)\w{0,30}["\']?\s*[=:]\s*["\'](?P<value>[^"\'\s]{3,100})["\']',
        severity=Severity.HIGH,
        description="Password assigned from a string literal",
        exclude_patterns=ENV_LOOKUP_EXCLUDES,
        ignore_case=True,
    ),
    SecretPattern(
        name="generic_api_key",
        regex=(r'\b(?:api[_-]?key|apikey|api[_-]?secret|access[_-]?token|auth[_-]?token|client[_-]?secret)'
               r'["\']?\s*[=:]\s*["\'](?P<value>[A-Za-z0-9_\-./+=]{16,200})["\']'),
        severity=Severity.HIGH,
        description="API key or token assigned from a string literal",
        exclude_patterns=ENV_LOOKUP_EXCLUDES,
        ignore_case=True,
    ),
]

# Checked against the whole line of a match
GLOBAL_FALSE_POSITIVES = [
    r'process\.env\.',
    r'\bos\.environ',
    r'\bos\.getenv\(',
    r'\$\{[^}\n]{0,200}\}',
    r'\bYOUR_[A-Z0-9_]{0,60}_HERE\b',
    r'(?i)\bPLACEHOLDER\b',
    r'-----BEGIN (?:PUBLIC KEY|RSA PUBLIC KEY|CERTIFICATE)-----',
]

# Checked against the assigned value, or the whole match for token patterns
VALUE_FALSE_POSITIVES = [
    r'\*{4,}',
    r'\.{3}',
    r'<[A-Za-z_][A-Za-z0-9_ -]{0,40}>',
]

# Matched against the value only, never the variable name
TEST_VALUE_MARKERS = r'(?i)test|example|sample|demo'
