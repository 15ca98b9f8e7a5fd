import json

import requests

BASE_URL = "http://127.0.0.1:8000"

# --- sample search ---
payload = {
    "start": "München Hbf",
    "ziel": "Berlin Hbf",
    "abfahrtab": "2025-07-26",
    "klasse": "KLASSE_2",
    "schnelleVerbindungen": False,
    "nurDeutschlandTicketVerbindungen": False,
    "maximaleUmstiege": 0,
    "dayLimit": 3,
}

def run_smoke():
    url = f"{BASE_URL}/api/search-prices"
    headers = {"Content-Type": "application/json"}

    print(f"➡️ Sending POST {url}")
    print(json.dumps(payload, indent=2, ensure_ascii=False))

    resp = requests.post(url, headers=headers, json=payload, timeout=120)

    print(f"\n⬅️ Status: {resp.status_code}")
    try:
        data = resp.json()
        print(json.dumps(data, indent=2, ensure_ascii=False))
    except ValueError:
        print(resp.text)

if __name__ == "__main__":
    run_smoke()
