from __future__ import annotations

import pytest

from promptforge.agent.assistant import UNPARSED_AGENT_RESULT, Assistant

from conftest import USER_ID


@pytest.fixture()
def assistant(db, llm, settings):
    return Assistant(db, llm, settings)


@pytest.mark.asyncio
async def test_chat_stores_reply(db, assistant, scripted_llm, conversation):
    scripted_llm.reply("Use a useMemo here.", model="gpt-4o-mini")

    out = await assistant.chat("why so slow?", conversation["id"], project_files=[{"path": "a.ts"}])

    assert out == {"response": "Use a useMemo here.", "model": "gpt-4o-mini", "tokens_used": 15}
    stored = db.rows("messages")[0]
    assert stored["role"] == "assistant"
    assert stored["metadata"] == {"model": "gpt-4o-mini", "tokens_used": 15}
    assert "a.ts" in scripted_llm.requests[0]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_generate_code_unwraps_fences_and_filename(assistant, scripted_llm):
    scripted_llm.reply("```tsx\nexport const Card = () => null;\n```")
    scripted_llm.reply('  "Card.tsx"\n')

    out = await assistant.generate_code("a card", file_type="tsx")

    assert out == {"code": "export const Card = () => null;", "suggested_filename": "Card.tsx"}
    assert "tsx" in scripted_llm.requests[0]["messages"][0]["content"]
    assert scripted_llm.requests[1]["max_tokens"] == 50


@pytest.mark.asyncio
async def test_autonomous_writes_safe_files_only(db, assistant, scripted_llm, project):
    db.seed("code_files", project_id=project["id"], file_path="src/exists.ts", content="old")
    scripted_llm.reply_json(
        {
            "result": "Built a todo list",
            "filesCreated": ["ignored"],
            "dependenciesAdded": ["zustand"],
            "code": {
                "src/Todo.tsx": "export default function Todo() {}",
                "../evil.sh": "rm -rf /",
                "src/exists.ts": "clobber",
            },
            "instructions": "npm install zustand",
        }
    )

    out = await assistant.run_autonomous(project["id"], "todo list")

    assert out["result"] == "Built a todo list"
    assert out["filesCreated"] == ["src/Todo.tsx"]
    assert out["dependenciesAdded"] == ["zustand"]
    assert out["instructions"] == "npm install zustand"

    contents = {row["file_path"]: row["content"] for row in db.rows("code_files")}
    assert contents["src/exists.ts"] == "old"
    assert "../evil.sh" not in contents


@pytest.mark.asyncio
async def test_autonomous_unparseable_reply(assistant, scripted_llm, project):
    scripted_llm.reply("I did some things, trust me.")

    out = await assistant.run_autonomous(project["id"], "anything")

    assert out["result"] == UNPARSED_AGENT_RESULT
    assert out["filesCreated"] == []
    assert out["instructions"] == "I did some things, trust me."


@pytest.mark.asyncio
async def test_chat_bills_catalog_model_not_provider_snapshot(db, assistant, scripted_llm, conversation):
    db.seed("ai_models", model_name="gpt-4o-mini", cost_per_input_token=0.01, cost_per_output_token=0.02)
    db.seed("user_billing", user_id=USER_ID, plan_name="free", status="active", monthly_limit=10.0, current_usage=1.0)
    scripted_llm.reply("sure", model="gpt-4o-mini-2024-07-18")

    out = await assistant.chat("hello", conversation["id"], model="gpt-4o-mini", user_id=USER_ID)

    assert out["model"] == "gpt-4o-mini-2024-07-18"
    assert db.rows("user_billing")[0]["current_usage"] == pytest.approx(1.2)
