#!/usr/bin/env python
from setuptools import setup, find_packages

setup(name="jira-md",
      version="0.1.0",
      description="Jira issue CLI that writes markdown descriptions as Atlassian Document Format",
      author="Stitch",
      classifiers=["Programming Language :: Python :: 3 :: Only"],
      python_requires=">=3.8",
      install_requires=[
          "singer-python==6.0.1",
          "requests==2.32.4",
          "backoff",
          "mistune>=3.0.2,<4"
      ],
      extras_require={
          'dev': [
              'pylint',
              'nose2',
              'ipdb'
          ]
      },
      entry_points="""
          [console_scripts]
          jira-md=jira_md:main
      """,
      packages=find_packages(exclude=["tests", "tests.*"]),
)
