#!/usr/bin/env python3
"""
CDK-Nag Security and Compliance Scanner for the ESS lab
Synthesizes the lab stack with the AwsSolutions checks enabled and summarizes findings
"""

import os
import sys
import subprocess
import csv
from pathlib import Path

def run_cdk_nag(skip_install: bool = False):
    """Run cdk-nag checks on the ESS lab stack"""
    
    # Change to CDK directory
    repo_dir = Path(__file__).parent.parent
    cdk_dir = repo_dir / "cdk"
    os.chdir(cdk_dir)
    
    print("🔍 Running CDK-Nag security and compliance checks...")
    print(f"📁 Working directory: {cdk_dir}")
    
    try:
        if not skip_install:
            print("\n📦 Installing project dependencies...")
            subprocess.run([sys.executable, "-m", "pip", "install", "-e", str(repo_dir)],
                           check=True, capture_output=True)
        
        # Run CDK synth with nag checks
        print("\n🔍 Running CDK synth with nag checks...")
        result = subprocess.run(
            ["cdk", "synth", "--all"],
            env={k: v for k, v in os.environ.items() if k != "CDK_NAG_SKIP"},
            capture_output=True,
            text=True
        )
        
        print("📊 CDK-Nag Results:")
        print("=" * 50)
        
        if result.returncode == 0:
            print("✅ CDK synthesis completed successfully!")
            if result.stdout:
                print("\nOutput:")
                print(result.stdout)
        else:
            print("❌ CDK synthesis failed or found issues:")
            if result.stderr:
                print("\nErrors/Warnings:")
                print(result.stderr)
            
        # Parse and summarize nag findings
        violations = []
        if "cdk.out" in os.listdir("."):
            print("\n📋 Analyzing CDK-Nag findings...")
            violations = analyze_nag_results()["violations"]

        return result.returncode == 0 and not violations
        
    except subprocess.CalledProcessError as e:
        print(f"❌ Error running CDK commands: {e}")
        return False
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        return False

def analyze_nag_results(cdk_out_dir: Path = Path("cdk.out")) -> dict:
    """Summarize the cdk-nag CSV reports written to cdk.out"""

    summary = {'violations': [], 'suppressed': 0, 'compliant': 0}

    if not cdk_out_dir.exists():
        print("⚠️  No cdk.out directory found")
        return summary

    nag_files = sorted(cdk_out_dir.glob("**/*NagReport.csv"))

    if not nag_files:
        print("ℹ️  No nag report files found, but checks were applied during synth")
        return summary

    for nag_file in nag_files:
        try:
            with open(nag_file, 'r', newline='') as f:
                rows = list(csv.DictReader(f))
        except (OSError, csv.Error) as e:
            print(f"⚠️  Error reading {nag_file}: {e}")
            continue

        violations = [row for row in rows if row.get('Compliance') == 'Non-Compliant']
        suppressed = sum(1 for row in rows if row.get('Compliance') == 'Suppressed')
        compliant = sum(1 for row in rows if row.get('Compliance') == 'Compliant')

        summary['violations'].extend(violations)
        summary['suppressed'] += suppressed
        summary['compliant'] += compliant

        print(f"\n📄 {nag_file.name}:")
        print(f"   🚨 Violations: {len(violations)}")
        print(f"   🔇 Suppressions: {suppressed}")

        if violations:
            print("   Top violations:")
            for i, violation in enumerate(violations[:3]):
                print(f"     {i+1}. {violation.get('Rule ID', 'Unknown')} - {violation.get('Resource ID', 'Unknown')}")

    print(f"\n📊 Summary:")
    print(f"   Total violations: {len(summary['violations'])}")
    print(f"   Total suppressions: {summary['suppressed']}")

    if summary['violations']:
        print(f"\n💡 Add a reasoned suppression to nag_suppressions.py or fix the resource")

    return summary

def main():
    """Main entry point"""
    print("🛡️  ESS Lab CDK-Nag Security Scanner")
    print("=" * 40)

    success = run_cdk_nag(skip_install="--skip-install" in sys.argv[1:])
    
    if success:
        print("\n✅ CDK-Nag scan completed successfully!")
        print("💡 Review any violations above and consider adding suppressions if justified")
    else:
        print("\n❌ CDK-Nag scan encountered issues")
        print("🔧 Check your CDK configuration and try again")
        sys.exit(1)

if __name__ == "__main__":
    main()
