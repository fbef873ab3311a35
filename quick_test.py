# Smoke test against a running server: python quick_test.py [url]
import sys
from time import time

from judge_client import JudgeClient, Submission


HELLO = r'''
#include <stdio.h>
int main(void) { printf("Hola Mundo\n"); return 0; }
'''

SUM = r'''
#include <stdio.h>
int main(void) { int a, b; scanf("%d %d", &a, &b); printf("%d\n", a + b); return 0; }
'''

LOOP = r'''
int main(void) { for (;;) {} }
'''

BROKEN = r'''
#include <stdio.h>
int main(void) { printf("x") return 0; }
'''


def test_all(client: JudgeClient):
    verdict = client.judge_one(Submission(code=HELLO, expectedOutput='Hola Mundo\n', exerciseId=1))
    print(verdict)
    assert verdict.success and verdict.isCorrect

    verdict = client.judge_one(Submission(code=SUM, expectedOutput='15\n', exerciseId=2, input='5 10'))
    print(verdict)
    assert verdict.isCorrect

    verdict = client.judge_one(Submission(code=SUM, expectedOutput='16\n', exerciseId=2, input='5 10'))
    print(verdict)
    assert verdict.success and verdict.errorType == 'incorrect_output'

    verdict = client.judge_one(Submission(code=BROKEN, expectedOutput='x', exerciseId=3))
    print(verdict)
    assert not verdict.success and verdict.errorType == 'compilation'

    start = time()
    verdict = client.judge_one(Submission(code=LOOP, expectedOutput='', exerciseId=4))
    print(verdict)
    assert verdict.errorType == 'runtime'
    print(f'Infinite loop stopped after {time() - start:.2f} seconds')

    results = client.judge([
        Submission(code=HELLO, expectedOutput='Hola Mundo', exerciseId=1)
        for _ in range(8)
    ])
    assert all(r.isCorrect for r in results)
    print(client.get_status())


if __name__ == '__main__':
    test_all(JudgeClient(sys.argv[1] if len(sys.argv) > 1 else 'http://localhost:3001'))
