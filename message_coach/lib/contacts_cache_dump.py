import subprocess, argparse, pathlib
from .config import DEFAULT_CONTACTS

APPLE_SCRIPT = r'''
tell application "Contacts"
  set contactList to {}
  repeat with p in people
    set gname to ""
    set fname to ""
    if first name of p is not missing value then set gname to (first name of p as string)
    if last name of p is not missing value then set fname to (last name of p as string)
    if gname is "" and fname is "" then set gname to (name of p as string)
    repeat with ph in phones of p
      set end of contactList to gname & "||" & fname & "||phone||" & (value of ph as string)
    end repeat
    repeat with em in emails of p
      set end of contactList to gname & "||" & fname & "||email||" & (value of em as string)
    end repeat
  end repeat
  set AppleScript's text item delimiters to "\n"
  set result to contactList as string
  set AppleScript's text item delimiters to ""
  return result
end tell
'''

DUMP_TIMEOUT = 600  # seconds

def dump_contacts_lines(timeout_sec: int = DUMP_TIMEOUT) -> list[str]:
    """Cache lines `Given||Family||phone|email||value`, blank lines dropped."""
    proc = subprocess.run(
        ["/usr/bin/osascript", "-e", APPLE_SCRIPT],
        capture_output=True, text=True, timeout=timeout_sec,
    )
    if proc.returncode != 0:
        raise SystemExit(f"Contacts export failed ({proc.returncode}): {proc.stderr.strip()}"
                         " (allow your terminal to control Contacts)")
    return [ln.strip() for ln in (proc.stdout or "").splitlines() if ln.count("||") >= 2]

def main():
    ap = argparse.ArgumentParser(description="Dump Apple Contacts to text cache (Given||Family||phone||... / Given||Family||email||...)")
    ap.add_argument("--out", default=DEFAULT_CONTACTS,
                    help=f"Output path for the contacts cache (default: {DEFAULT_CONTACTS})")
    ap.add_argument("--timeout", type=int, default=DUMP_TIMEOUT,
                    help="Timeout in seconds for AppleScript execution (default: %(default)s)")
    args = ap.parse_args()

    lines = dump_contacts_lines(timeout_sec=args.timeout)
    out_path = pathlib.Path(args.out).expanduser()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text("\n".join(lines), encoding="utf-8")
    phones = sum(1 for ln in lines if "||phone||" in ln)
    emails = sum(1 for ln in lines if "||email||" in ln)
    print(f"Wrote {len(lines)} lines to {out_path}")
    print(f"  phones: {phones}, emails: {emails}")

if __name__ == "__main__":
    main()
