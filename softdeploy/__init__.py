"""SoftDeploy backend: executes API, browser and load test suites."""

__version__ = "1.0.0"
