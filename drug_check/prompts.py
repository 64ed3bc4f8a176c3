"""
Prompt templates for Gemini
Note: All JSON example braces are doubled ({{ }}) to escape them for .format()
"""

IDENTIFY_PROMPT = "この画像に写っている薬剤の名称と数量を特定してください。識別が困難な場合はその旨を伝えてください。例：アセトアミノフェン 2錠"

VERIFY_PROMPT = """以下の薬剤リストと処方箋の画像を照合し、必ず下記のJSON形式で回答してください。

【服用タイミング】
{timing}

【薬剤リスト】
{drug_list}

【処方箋から読み取った薬剤】
処方箋の画像を解析し、薬剤名、数量、用法を抽出してください。

【照合結果】
薬剤リストと処方箋の情報を比較し、一致・不一致を判断してください。

【出力フォーマット】
{{
  "overallStatus": "完全一致" | "一部不一致" | "不一致",
  "summary": "照合結果の要約（例：処方されたすべての薬剤が確認できました。）",
  "prescriptionDrugs": [
    {{ "name": "薬剤名", "quantity": "数量", "timing": "用法" }}
  ],
  "comparison": [
    {{
      "identifiedName": "識別した薬剤名",
      "prescriptionName": "処方箋の薬剤名",
      "match": true | false,
      "warning": "不一致の場合の警告メッセージ"
    }}
  ]
}}
"""

DRUG_INFO_PROMPT = """{drug_name}という医薬品について、以下の情報を一般の方向けに分かりやすく、簡潔にまとめてください。

- 主な効能・効果
- 考えられる主な副作用
- 服用時の注意点

回答は箇条書きで、マークダウン形式でお願いします。"""


def format_drug_list(drugs: list) -> str:
    """Format identified drugs as "- name quantity" lines."""
    lines = []
    for drug in drugs:
        if isinstance(drug, dict):
            name = drug.get("name", "")
            quantity = drug.get("quantity", "")
            lines.append(f"- {name} {quantity}")
        else:
            lines.append(f"- {drug}")
    return "\n".join(lines)


def build_verify_prompt(drugs: list, timing: str) -> str:
    return VERIFY_PROMPT.format(timing=timing, drug_list=format_drug_list(drugs))


def build_drug_info_prompt(drug_name: str) -> str:
    return DRUG_INFO_PROMPT.format(drug_name=drug_name)
