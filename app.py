"""
app.py
Description: A Flask-based Interactive Voice Response (IVR) system on Twilio's Voice API that walks a
trainee through the SCC ISA training call flow: pick a flow (M1 or MCD), pass that flow's confirmation
gate, choose a difficulty and hear the scenario brief.

 Contents:
1. Initialize the Flask application
2. Create helper functions
3. Menu and gates
4. Difficulty and scenario brief
5. State machine implementation
6. Define the webhooks

Nothing about the call is stored on the server. Whatever a later step needs (the selected flow) travels
in the query string of the callback URL handed to Twilio, and everything else comes from the form fields
Twilio posts with each webhook.
"""

from urllib.parse import urlencode

from flask import Flask, Response, request
from twilio.twiml.voice_response import VoiceResponse
from werkzeug.exceptions import HTTPException

from alerts import notify_admins
from call_log import call_record, configure_logging, log_event
from config import Settings

"""
1. Initialize the Flask application

"""
configure_logging()
settings = Settings()
app = Flask(__name__)

MENU_TIMEOUT = 6
PROMPT_TIMEOUT = 8
DEFAULT_MODE = 'mcd'

"""
Each flow has its own confirmation gate. The caller is asked to say the gate phrase and press the
gate digit; only the digit is checked.
"""
FLOWS = {
    'm1': {'label': 'M1', 'spoken': 'M 1', 'digit': '8', 'phrase': 'M 1 governance confirmed'},
    'mcd': {'label': 'MCD', 'spoken': 'M C D', 'digit': '9', 'phrase': 'M C D governance confirmed'},
}

DIFFICULTIES = {
    '1': 'Standard',
    '2': 'Moderate',
    '3': 'Edge',
}

POLICY_REMINDER = ('Reminder. Verify the borrower before discussing the account. '
                   'Do not promise outcomes you cannot guarantee. '
                   'Document every commitment before the call ends.')

"""
2. Create helper functions
Twilio needs absolute URLs for Gather actions and Redirects. Behind a proxy the public host and scheme
arrive in the X-Forwarded-* headers.
"""


def abs_url(path, **params):
    host = (request.headers.get('X-Forwarded-Host') or request.host).split(',')[0].strip()
    scheme = request.headers.get('X-Forwarded-Proto') or 'https'
    url = f'{scheme}://{host}{path}'
    if params:
        url += '?' + urlencode(params)
    return url


def digits():
    return (request.form.get('Digits') or '').strip()


def resolve_mode(mode):
    mode = (mode or '').strip()
    return mode if mode in FLOWS else DEFAULT_MODE


def say(target, text):
    return target.say(text, voice=settings.voice)


def gather(response, action, prompt, timeout):
    """
    Collect a single DTMF digit. When the caller presses nothing Twilio falls through to whatever
    follows the Gather, so the caller always gets a fallback after it.
    """
    g = response.gather(input='dtmf', num_digits=1, action=action, method='POST', timeout=timeout)
    say(g, prompt)
    return g


def twiml(response):
    return Response(str(response), status=200, mimetype='application/xml')


"""
3. Menu and gates
"""


def enter_greeting(flow=None):
    response = VoiceResponse()
    gather(response, abs_url('/menu'),
           'Welcome to S C C I S A training. '
           'Press 1 for the M 1 scenario. '
           'Press 2 for the M C D scenario.',
           MENU_TIMEOUT)
    say(response, 'No input received.')
    response.redirect(abs_url('/voice'), method='POST')
    return response


def exit_menu(flow=None):
    transitions = {
        '1': 'm1',
        '2': 'mcd',
    }
    selection = digits()
    call_record('MENU', digit=selection)
    response = VoiceResponse()
    if selection in transitions:
        target = transitions[selection]
        say(response, f"{FLOWS[target]['spoken']} selected.")
        response.redirect(abs_url(f'/{target}'), method='POST')
    else:
        say(response, 'Invalid selection. Returning to main menu.')
        response.redirect(abs_url('/voice'), method='POST')
    return response


def enter_gate(flow):
    spec = FLOWS[flow]
    call_record(f"{spec['label']}_GATE_PROMPT")
    response = VoiceResponse()
    gather(response, abs_url(f'/{flow}/gate'),
           f"{spec['spoken']} gate. Say the phrase: {spec['phrase']}. "
           f"Then press {spec['digit']} to confirm and proceed.",
           PROMPT_TIMEOUT)
    say(response, 'Gate not passed. Returning to main menu.')
    response.redirect(abs_url('/voice'), method='POST')
    return response


def exit_gate(flow):
    spec = FLOWS[flow]
    selection = digits()
    passed = selection == spec['digit']
    call_record(f"{spec['label']}_GATE", digit=selection, **{'pass': passed})
    response = VoiceResponse()
    if passed:
        say(response, 'Gate confirmed.')
        response.redirect(abs_url('/difficulty', mode=flow), method='POST')
    else:
        say(response, 'Gate not passed.')
        response.redirect(abs_url(f'/{flow}'), method='POST')
    return response


"""
4. Difficulty and scenario brief
The scenario brief is the end of the call. An invalid difficulty there hangs up rather than looping,
since going back would mean choosing the flow again.
"""


def enter_difficulty(mode):
    call_record('DIFFICULTY_PROMPT', mode=mode)
    response = VoiceResponse()
    gather(response, abs_url('/scenario', mode=mode),
           'Select difficulty. Press 1 for Standard. Press 2 for Moderate. Press 3 for Edge.',
           PROMPT_TIMEOUT)
    say(response, 'No selection received. Returning to main menu.')
    response.redirect(abs_url('/voice'), method='POST')
    return response


def exit_difficulty(mode):
    selection = digits()
    difficulty = DIFFICULTIES.get(selection)
    call_record('SCENARIO_SELECT', mode=mode, digit=selection, difficulty=difficulty)
    response = VoiceResponse()
    if difficulty is None:
        say(response, 'Invalid selection. Goodbye.')
        response.hangup()
        return response

    say(response, f"{FLOWS[mode]['label']} scenario loaded. Difficulty: {difficulty}.")
    say(response, POLICY_REMINDER)
    # placeholder for the training session itself
    response.pause(length=settings.scenario_pause_seconds)
    say(response, 'Session ended. Goodbye.')
    response.hangup()
    return response


def enter_error():
    response = VoiceResponse()
    say(response, 'Sorry, something went wrong. Please call again later. Goodbye.')
    response.hangup()
    return response


"""
5. State machine implementation

Each state has a key in the IVR dictionary. The value is a tuple with the "enter" action, which builds the
prompt for the state, and the "exit" action, which reads the caller's digits and decides where to go next.
Both take the flow name, which is None for the states before a flow is chosen.

   voice --1--> m1 gate --8--> difficulty(m1) --1/2/3--> scenario brief, hang up
   voice --2--> mcd gate --9--> difficulty(mcd) --1/2/3--> scenario brief, hang up

A wrong gate digit goes back to the same gate, any timeout goes back to the greeting and an invalid
difficulty hangs up.
"""

IVR = {
    'greeting': (enter_greeting, exit_menu),
    'gate': (enter_gate, exit_gate),
    'difficulty': (enter_difficulty, exit_difficulty),
}


def enter_state(state, flow=None):
    enter_handler, _ = IVR[state]
    return twiml(enter_handler(flow))


def exit_state(state, flow=None):
    _, exit_handler = IVR[state]
    return twiml(exit_handler(flow))


"""
6. Define the webhooks
Twilio posts to one webhook per step. The step is given by the path and the flow by the path or the
"mode" query parameter.
"""


@app.route('/', methods=['GET'])
def health():
    return Response('OK', status=200, mimetype='text/plain')


@app.route('/version', methods=['GET'])
def version():
    return Response(settings.version, status=200, mimetype='text/plain')


@app.route('/voice', methods=['POST'])
def voice():
    call_record('CALL_START')
    return enter_state('greeting')


@app.route('/menu', methods=['POST'])
def menu():
    return exit_state('greeting')


@app.route('/<any(m1, mcd):flow>', methods=['POST'])
def gate_prompt(flow):
    return enter_state('gate', flow)


@app.route('/<any(m1, mcd):flow>/gate', methods=['POST'])
def gate(flow):
    return exit_state('gate', flow)


@app.route('/difficulty', methods=['POST'])
def difficulty():
    return enter_state('difficulty', resolve_mode(request.args.get('mode')))


@app.route('/scenario', methods=['POST'])
def scenario():
    return exit_state('difficulty', resolve_mode(request.args.get('mode')))


@app.errorhandler(Exception)
def server_error(e):
    if isinstance(e, HTTPException):
        return e
    log_event('SERVER_ERROR', level='ERROR', path=request.path, sid=request.form.get('CallSid'), error=repr(e))
    notify_admins(settings.alerts, 'server_error', 'IVR webhook failed',
                  f'{request.method} {request.path} raised {type(e).__name__}',
                  {'sid': request.form.get('CallSid'), 'error': repr(e)})
    # Twilio expects TwiML on every callback, errors included
    return twiml(enter_error())


if __name__ == '__main__':
    app.run(host=settings.host, port=settings.port)
