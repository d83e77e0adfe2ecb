from __future__ import annotations

from ..models.processing_result import UploadResponse
from ..models.upload_file import UploadStatus

"""SUMMARY line rendering for one submit.

Format:
SUMMARY file={name} status={ok|rejected|failed} tasks={n} agents={w}
policy={policy} elapsed_sec={elapsed} throughput_tps={throughput}
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Format very small numbers to avoid scientific notation
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.3f}".rstrip('0').rstrip('.')


def response_status(response: UploadResponse) -> UploadStatus:
    if response.success:
        return UploadStatus.OK
    if response.status_code >= 500:
        return UploadStatus.FAILED
    return UploadStatus.REJECTED


def render_summary_line(file_name: str, response: UploadResponse, policy: str) -> str:
    """Render the SUMMARY line for a submit result.

    >>> from task_dispatch.models.processing_result import UploadResponse
    >>> r = UploadResponse(success=False, message="x", status_code=400, errors=["e"])
    >>> render_summary_line("a.csv", r, "round_robin")
    'SUMMARY file=a.csv status=rejected tasks=0 agents=0 policy=round_robin elapsed_sec=0 throughput_tps=0'
    """
    tasks = response.data.created_tasks if response.data else 0
    agents = response.data.agents_count if response.data else 0
    elapsed = response.elapsed_seconds
    throughput = tasks / elapsed if elapsed > 0 else 0.0
    # ファイル名の空白は契約の key=value 区切りと衝突するため置換
    safe_name = file_name.replace(" ", "_") if file_name else "-"
    return (
        f"SUMMARY file={safe_name} "
        f"status={response_status(response).value} "
        f"tasks={tasks} "
        f"agents={agents} "
        f"policy={policy} "
        f"elapsed_sec={_format_number(elapsed)} "
        f"throughput_tps={_format_number(throughput)}"
    )
