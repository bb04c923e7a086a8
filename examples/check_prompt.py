#!/usr/bin/env python
"""
Example script for calling the Copyright Prompt Check API.

This script sends a prompt to the check endpoint and prints the detected
violations and the revised prompt.

Usage:
    python examples/check_prompt.py "Mickey Mouse riding a bicycle"
"""

import sys
import httpx
import asyncio
from typing import Dict, Any

API_URL = "http://localhost:8000/check"

SAMPLE_PROMPT = "Mickey Mouse and Spider-Man drinking Coca-Cola on a beach"


async def check_prompt(prompt: str, include_positions: bool = True) -> Dict[str, Any]:
    """
    Call the API to check a prompt.

    Args:
        prompt: The prompt to screen
        include_positions: Ask the API for match positions

    Returns:
        Dict[str, Any]: The API response, or an empty dict on HTTP errors
    """
    async with httpx.AsyncClient() as client:
        response = await client.post(
            API_URL,
            json={"prompt": prompt, "include_positions": include_positions},
            timeout=30.0  # Generative rewrites can be slow
        )

        if response.status_code != 200:
            print(f"Error: {response.status_code}")
            print(response.text)
            return {}

        return response.json()


def display_results(results: Dict[str, Any]) -> None:
    """Print a check result in a readable format."""
    if not results:
        return

    print("\n====== COPYRIGHT PROMPT CHECK ======\n")
    print(results.get("message", ""))

    if not results.get("succeeded", False):
        print(f"Status: {results.get('status')}")
        return

    violations = results.get("violations", [])
    if violations:
        print("\nVIOLATIONS:")
    for violation in violations:
        position = violation.get("position")
        where = f" at {position['start']}-{position['end']}" if position else ""
        print(f"- {violation['pattern']} [{violation['severity']}, {violation['category']}]{where}")
        print(f"  {violation['explanation']}")
        if violation.get("suggestion"):
            print(f"  Suggestion: {violation['suggestion']}")

    if results.get("revised_prompt"):
        print(f"\nREVISED PROMPT ({results.get('revision_method')}):")
        print(results["revised_prompt"])

    for advisory in results.get("advisories", []):
        print(f"\nNote: {advisory}")


async def main(prompt: str = SAMPLE_PROMPT) -> None:
    print("Calling Copyright Prompt Check API...")
    print(f"Prompt: '{prompt}'")

    results = await check_prompt(prompt)
    display_results(results)


if __name__ == "__main__":
    if len(sys.argv) > 1:
        asyncio.run(main(" ".join(sys.argv[1:])))
    else:
        asyncio.run(main())
