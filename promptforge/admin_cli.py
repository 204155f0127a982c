"""
admin_cli.py — promptforge tiny admin helper

Usage:
    python -m promptforge.admin_cli list-projects
    python -m promptforge.admin_cli list-sessions <project_id>
    python -m promptforge.admin_cli seed-models
    python -m promptforge.admin_cli seed-prompts
"""

from __future__ import annotations

import sys

from .agent.prompts import ANALYZE_PROMPT, EXECUTE_PROMPT, TECH_STACK
from .db import get_db
from .models import AIProvider, PromptCategory

DEFAULT_MODELS = [
    {
        "name": "GPT-4o",
        "provider": AIProvider.OPENAI.value,
        "model_name": "gpt-4o",
        "max_tokens": 4096,
        "cost_per_input_token": 0.0000025,
        "cost_per_output_token": 0.00001,
    },
    {
        "name": "GPT-4o mini",
        "provider": AIProvider.OPENAI.value,
        "model_name": "gpt-4o-mini",
        "max_tokens": 4096,
        "cost_per_input_token": 0.00000015,
        "cost_per_output_token": 0.0000006,
    },
]


def _default_prompts():
    # keep {context} for PromptLibrary to fill at request time
    return [
        {
            "name": "Default code executor",
            "category": PromptCategory.CODING.value,
            "content": EXECUTE_PROMPT.format(stack=TECH_STACK, context="{context}"),
        },
        {
            "name": "Default code analyzer",
            "category": PromptCategory.ANALYSIS.value,
            "content": ANALYZE_PROMPT.format(stack=TECH_STACK, context="{context}"),
        },
    ]


def list_projects(db):
    res = db.table("projects").select("id,name,status,user_id,deleted_at").execute()
    for row in res.data or []:
        trashed = " (deleted)" if row.get("deleted_at") else ""
        print(f'{row["id"]} | {row["name"]} | {row.get("status")} | {row["user_id"]}{trashed}')


def list_sessions(db, project_id: str):
    res = (
        db.table("execution_sessions")
        .select("id,status,completed_steps,total_steps,created_at")
        .eq("project_id", project_id)
        .order("created_at", desc=True)
        .execute()
    )
    for row in res.data or []:
        print(
            f'{row["id"]} | {row["status"]} | '
            f'{row.get("completed_steps", 0)}/{row.get("total_steps", 0)} | {row.get("created_at")}'
        )


def seed_models(db) -> int:
    added = 0
    for model in DEFAULT_MODELS:
        exists = db.table("ai_models").select("id").eq("model_name", model["model_name"]).limit(1).execute()
        if exists.data:
            continue
        db.table("ai_models").insert({**model, "is_active": True, "configuration": {}}).execute()
        added += 1
    print(f"Seeded {added} model(s)")
    return added


def seed_prompts(db) -> int:
    added = 0
    for prompt in _default_prompts():
        exists = db.table("system_prompts").select("id").eq("name", prompt["name"]).limit(1).execute()
        if exists.data:
            continue
        db.table("system_prompts").insert({**prompt, "is_active": False, "version": 1}).execute()
        added += 1
    print(f"Seeded {added} prompt(s)")
    return added


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: python -m promptforge.admin_cli <command>")
        return

    cmd = argv[0]
    if cmd == "list-projects":
        list_projects(get_db())
    elif cmd == "list-sessions":
        if len(argv) < 2:
            print("Usage: python -m promptforge.admin_cli list-sessions <project_id>")
            return
        list_sessions(get_db(), argv[1])
    elif cmd == "seed-models":
        seed_models(get_db())
    elif cmd == "seed-prompts":
        seed_prompts(get_db())
    else:
        print(f"Unknown command: {cmd}")


if __name__ == "__main__":
    main()
