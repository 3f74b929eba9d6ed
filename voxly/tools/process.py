"""
Process a local audio file end to end: upload, transcribe, summarize
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from voxly.db import get_database
from voxly.db.jobs import jobs_controller
from voxly.llm import LLMAgent
from voxly.llm.fallback import parse_provider_selection
from voxly.llm.prompts import parse_template_param
from voxly.pipelines.main_file_pipeline import AudioUploadedEvent, PipelineMainFile
from voxly.services.job_process import upload_job_audio


async def upload_audio(source_path: Path) -> str:
    with open(source_path, "rb") as fd:
        return await upload_job_audio(source_path.name, fd)


def write_result(result: dict, output_path: str | None = None):
    data = json.dumps(result, indent=2, ensure_ascii=False)
    if output_path:
        with open(output_path, "w") as fd:
            fd.write(data)
        print(f"Result written to {output_path}", file=sys.stderr)
    else:
        print(data)


async def process(
    source_path: str,
    template: str | None = None,
    provider: str | None = None,
    model: str | None = None,
    output_path: str | None = None,
):
    path = Path(source_path)
    if not path.is_file():
        raise ValueError(f"Audio file not found: {source_path}")

    database = get_database()
    # db connect is a part of ceremony
    await database.connect()

    try:
        storage_key = await upload_audio(path)
        job = await jobs_controller.add(
            storage_key=storage_key, template=parse_template_param(template)
        )

        async with LLMAgent.from_settings() as agent:
            pipeline = PipelineMainFile(
                AudioUploadedEvent(job_id=job.id, storage_key=storage_key),
                agent,
                jobs=jobs_controller,
                selection=parse_provider_selection(provider, agent.providers),
                model=model,
            )
            await pipeline.process()

        job = await jobs_controller.get_by_id(job.id)
        result = job.model_dump(mode="json")
        result["summary"] = job.summary
        write_result(result, output_path)
    finally:
        await database.disconnect()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Transcribe and summarize an audio file"
    )
    parser.add_argument("source", help="Source file (mp3, wav, m4a...)")
    parser.add_argument(
        "--template",
        help="Summary template: default, brainstorm, interview, lecture, voice-memo",
    )
    parser.add_argument(
        "--provider",
        help="LLM provider, use '<name>-only' to disable fallback (e.g. openai-only)",
    )
    parser.add_argument("--model", help="Force the LLM model")
    parser.add_argument("--output", "-o", help="Output file (result.json)")
    args = parser.parse_args()

    asyncio.run(
        process(
            args.source,
            template=args.template,
            provider=args.provider,
            model=args.model,
            output_path=args.output,
        )
    )
