from setuptools import setup, find_packages


setup(
    name="nocode-slackbot",
    version="0.1.0",
    description="A no-code way to make a Slack bot that replays Block Kit workflows",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "slack_sdk>=3.27.0",
        "pydantic>=2.6.0",
        "pydantic-settings>=2.2.0",
        "PyYAML>=6.0",
        "typer>=0.12.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "nocode-slackbot=nocodebot.cli:app",
        ]
    },
    python_requires=">=3.11",
)
