"""
Repoaudit - Audit GitHub repositories and score them for judging.

A CLI tool that:
1. Crawls a repository through the GitHub contents API
2. Classifies its structure (layers, architecture, design patterns)
3. Scores five weighted criteria on a 0-10 scale
4. Optionally asks an LLM for qualitative judgments
5. Optionally checks hackathon eligibility rules

Usage:
    repoaudit init                  # Write a sample repoaudit.yml
    repoaudit audit OWNER REPO      # Audit a repository
    repoaudit interactive           # Guided menu
    repoaudit templates             # List project templates
    repoaudit hackathon-new         # Add a hackathon rule set
"""

__version__ = "0.1.0"
__author__ = "Repoaudit"
