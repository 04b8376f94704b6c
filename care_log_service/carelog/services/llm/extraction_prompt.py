# carelog/services/llm/extraction_prompt.py
from typing import List

from carelog.schemas.models import RECORD_TYPE_LABELS, FieldSettings

EXTRACT_SYSTEM_PROMPT = (
    "あなたは介護記録の入力支援AIです。入力テキストから情報を抽出し、JSONで出力してください。\n"
    "Hard rules:\n"
    "- 入力テキストに明示されている情報だけを使う。推測で値を作らない。\n"
    "- record_type は次のいずれか: {record_types}\n"
    "- details のキーは下の【抽出対象フィールド一覧】のキーを使う。\n"
    "- 値はすべて文字列(String)にする。\n"
    "- 該当する情報がないフィールドはJSONに含めない（null や空文字を書かない）。\n"
    "- 数値変換ルール:\n"
    "  * 「8割」→ \"80\"（割は10倍して数値のみ）\n"
    "  * 「200ml」→ \"200\"（単位を除去）\n"
    "  * 「36.5度」→ \"36.5\"（単位を除去）\n"
    "  * 「120/80」または「120の80」→ systolic_bp: \"120\", diastolic_bp: \"80\"\n"
    "- 入力テキストをそのまま値にしない。\n"
    "- 日時が明示されていれば suggested_date に ISO8601 で入れる。なければ省略する。\n"
    "- Output ONLY valid JSON matching the schema.\n"
)

FEW_SHOT_EXAMPLES = (
    "【抽出例】\n"
    "入力: \"お昼ご飯は全粥を8割、お茶を200ml飲みました\"\n"
    "出力: {\"record_type\": \"meal\", \"details\": {\"main_dish\": \"全粥\", \"amount_percent\": \"80\", "
    "\"fluid_type\": \"お茶\", \"fluid_ml\": \"200\"}}\n"
    "\n"
    "入力: \"朝食パン1枚と牛乳150cc、主食5割\"\n"
    "出力: {\"record_type\": \"meal\", \"details\": {\"main_dish\": \"パン\", \"amount_percent\": \"50\", "
    "\"fluid_type\": \"牛乳\", \"fluid_ml\": \"150\"}}\n"
    "\n"
    "入力: \"体温36.8、血圧124の78、脈72\"\n"
    "出力: {\"record_type\": \"vital\", \"details\": {\"temperature\": \"36.8\", \"systolic_bp\": \"124\", "
    "\"diastolic_bp\": \"78\", \"pulse\": \"72\"}}\n"
    "\n"
    "入力: \"14時に排尿多量、失禁あり\"\n"
    "出力: {\"record_type\": \"excretion\", \"details\": {\"excretion_type\": \"尿\", \"amount\": \"多量\", "
    "\"incontinence\": \"あり\"}}\n"
)

# keys the few-shot examples above emit, whatever the user's settings say
FEW_SHOT_KEYS: List[str] = [
    "main_dish", "amount_percent", "fluid_type", "fluid_ml",
    "temperature", "systolic_bp", "diastolic_bp", "pulse",
    "excretion_type", "amount", "incontinence",
]


def format_record_types() -> str:
    return ", ".join(f"{k}({v})" for k, v in RECORD_TYPE_LABELS.items())


def format_field_definitions(settings: FieldSettings) -> str:
    lines = ["【抽出対象フィールド一覧】"]
    for rtype, fields in settings.items():
        lines.append("")
        label = RECORD_TYPE_LABELS.get(rtype)
        lines.append(f"### 記録タイプ: {rtype}" + (f"（{label}）" if label else ""))
        for f in fields:
            rule = f" (抽出ルール: {f.description})" if f.description else ""
            lines.append(f"- キー: \"{f.key}\", ラベル: \"{f.label}\"{rule}")
    return "\n".join(lines) + "\n"


def build_instructions(settings: FieldSettings) -> str:
    return (
        EXTRACT_SYSTEM_PROMPT.format(record_types=format_record_types())
        + "\n"
        + format_field_definitions(settings)
        + "\n"
        + FEW_SHOT_EXAMPLES
    )


def build_user_message(text: str) -> str:
    return f"【入力テキスト】\n\"{text}\"\n\n上記のルールと例に従って情報を抽出してください。"
