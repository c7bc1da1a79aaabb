"""
authprobe: differential authorization probing for AWS Query APIs (Amazon SNS).

Infers, per API operation, whether the service authorizes a request before
or after validating its parameters, by sending mutated requests to an
allowed, a denied, and a nonexistent topic and classifying the responses.
"""

__version__ = "0.1.0"
